import os
import tempfile

# Point the log file somewhere disposable before any agentkit_web module is imported.
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "agentkit_web_test.log"))
os.environ.setdefault("STATUS_TOKEN", "")
