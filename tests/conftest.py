import os
import tempfile

# Point the app at throwaway storage before any backend module builds its settings.
os.environ.setdefault("ROTARY_DATABASE_URL", "sqlite:///./test_rotary.db")
os.environ.setdefault("ROTARY_STORAGE_ROOT", tempfile.mkdtemp(prefix="rotary-storage-"))
os.environ.setdefault("ROTARY_SECRET_KEY", "test-secret-key")
