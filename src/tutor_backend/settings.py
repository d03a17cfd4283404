import os
import threading

def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ["true", "1", "yes", "on"]

class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.DEBUG_MODE = os.environ.get("DEBUG_MODE","development")
        # Tokens identifying the gateway that authenticates callers upstream
        self.API_TOKENS = [token.strip() for token in os.environ.get("API_TOKENS", "").split(",") if token.strip()]
        self.AUTH_CACHE_TTL = int(os.environ.get("AUTH_CACHE_TTL", "10"))
        self.EXAM_MATERIALS_STORAGE_DIR = os.environ.get("EXAM_MATERIALS_STORAGE_DIR", "data/exam-materials")
        # Whether a teacher viewing a material is written to the grant's access log
        self.LOG_TEACHER_VIEWS = _env_flag("LOG_TEACHER_VIEWS", "true")
        self.DEFAULT_PAGE_LIMIT = int(os.environ.get("DEFAULT_PAGE_LIMIT", "20"))

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

settings = BackendSettings()
