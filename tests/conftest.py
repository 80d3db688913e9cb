import os
import tempfile

# Settings are read at import time, so the test environment has to be in place first
_db_dir = tempfile.mkdtemp(prefix="rentauto-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key-for-rentauto"
os.environ["ENVIRONMENT"] = "testing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["STRICT_ROLE_POLICY"] = "false"
