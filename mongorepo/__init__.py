"""mongorepo: Generic async repository adapter for MongoDB collections."""

__version__ = "0.1.0"
__author__ = "mongorepo maintainers"

# Repository symbols live in mongorepo.repository; config is loaded lazily
# through mongorepo.config.get_settings()
__all__ = ["__version__", "__author__"]
