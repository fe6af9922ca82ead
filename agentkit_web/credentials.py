"""Resolve the server-side OpenAI API key from environment variables.

The resolver is a pure function of the mapping it is given: it never logs,
never raises for configuration problems and never touches the network.
Callers get either a ``CredentialSuccess`` or a ``CredentialFailure`` back and
decide what to do with it.
"""
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

# Descending precedence.
API_KEY_ENV_PRIORITY: Tuple[str, ...] = (
    "OPENAI_API_KEY",
    "OPENAI_DOMAIN_SECRET_KEY",
    "OPENAI_SECRET_KEY",
)

PROJECT_ID_ENV = "OPENAI_PROJECT_ID"

ENVIRONMENT_MODE_VAR = "NODE_ENV"

PUBLIC_KEY_ENV = "OPENAI_DOMAIN_PUBLIC_KEY"

DOMAIN_PUBLIC_KEY_PREFIX = "domain_pk_"
PROJECT_SCOPED_KEY_PREFIX = "sk-proj-"

MISSING_KEY = "missing_key"
DOMAIN_PUBLIC_KEY = "domain_public_key"
MISSING_PROJECT = "missing_project"

MULTIPLE_KEYS_WARNING = (
    "[create-session] Multiple OpenAI API keys detected; prioritising the highest-precedence value."
)


@dataclass(frozen=True)
class ResolutionWarning:
    message: str
    context: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class OpenAICredentials:
    api_key: str = field(repr=False)
    source: str
    project_id: Optional[str] = None
    warnings: List[ResolutionWarning] = field(default_factory=list)

    @property
    def project_scoped(self) -> bool:
        return looks_like_project_scoped_key(self.api_key)


@dataclass(frozen=True)
class CredentialError:
    reason: str
    message: str
    status: int


@dataclass(frozen=True)
class CredentialSuccess:
    value: OpenAICredentials
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class CredentialFailure:
    error: CredentialError
    ok: bool = field(default=False, init=False)


CredentialResult = Union[CredentialSuccess, CredentialFailure]


def looks_like_domain_public_key(value: str) -> bool:
    return value.startswith(DOMAIN_PUBLIC_KEY_PREFIX)


def looks_like_project_scoped_key(value: str) -> bool:
    return value.startswith(PROJECT_SCOPED_KEY_PREFIX)


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def is_production(env: Mapping[str, Optional[str]]) -> bool:
    """Return True if the mapping declares a production deployment."""
    return env.get(ENVIRONMENT_MODE_VAR) == "production"


def _pick_preferred_key(
    env: Mapping[str, Optional[str]], production: bool
) -> Tuple[Optional[Tuple[str, str]], List[ResolutionWarning]]:
    selected = None
    warnings: List[ResolutionWarning] = []

    for name in API_KEY_ENV_PRIORITY:
        candidate = _clean(env.get(name))
        if not candidate:
            continue

        if selected is None:
            selected = (candidate, name)
            continue

        if selected[0] == candidate:
            continue

        if not production:
            warnings.append(
                ResolutionWarning(
                    message=MULTIPLE_KEYS_WARNING,
                    context={"preferred": selected[1], "ignored": name},
                )
            )

    return selected, warnings


def resolve_openai_credentials(
    env: Optional[Mapping[str, Optional[str]]] = None,
    production: Optional[bool] = None,
) -> CredentialResult:
    """Pick the API key to use server-side and validate it.

    *env* defaults to ``os.environ``. *production* suppresses the
    multiple-keys warning; when omitted it is derived from ``NODE_ENV``
    inside *env*.
    """
    if env is None:
        env = os.environ
    if production is None:
        production = is_production(env)

    selected, warnings = _pick_preferred_key(env, production)

    if selected is None:
        return CredentialFailure(
            CredentialError(
                reason=MISSING_KEY,
                message=(
                    "Missing OpenAI API key. Set OPENAI_API_KEY, OPENAI_DOMAIN_SECRET_KEY, "
                    "or OPENAI_SECRET_KEY with a valid server-side key."
                ),
                status=500,
            )
        )

    api_key, source = selected

    if looks_like_domain_public_key(api_key):
        return CredentialFailure(
            CredentialError(
                reason=DOMAIN_PUBLIC_KEY,
                message=(
                    f"{source} is set to a domain public key. Move this value to {PUBLIC_KEY_ENV} "
                    "and configure a server-side API key (starts with sk-, sk-proj-, or domain_sk-) instead."
                ),
                status=400,
            )
        )

    project_id = _clean(env.get(PROJECT_ID_ENV)) or None

    if looks_like_project_scoped_key(api_key) and not project_id:
        return CredentialFailure(
            CredentialError(
                reason=MISSING_PROJECT,
                message=(
                    f"{source} is project-scoped. Set {PROJECT_ID_ENV} to the corresponding "
                    "project identifier to authenticate."
                ),
                status=500,
            )
        )

    return CredentialSuccess(
        OpenAICredentials(
            api_key=api_key,
            source=source,
            project_id=project_id,
            warnings=warnings,
        )
    )
