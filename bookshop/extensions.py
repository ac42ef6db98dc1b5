from flask_bcrypt import Bcrypt
from flask_caching import Cache
from flask_sqlalchemy import SQLAlchemy

from .cache import ResponseCache
from .metrics import PerformanceMonitor

db = SQLAlchemy()
bcrypt = Bcrypt()
cache = Cache()

# Keyed side-channel over `cache`; read paths consult it, writes invalidate it.
response_cache = ResponseCache(cache)
monitor = PerformanceMonitor()
