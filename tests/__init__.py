import os
import tempfile

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "resi_app_test_logs"))
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("CACHE_ENABLED", "false")
