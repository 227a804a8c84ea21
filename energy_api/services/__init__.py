from .query_service import QueryService
from .write_service import WriteService

__all__ = ["QueryService", "WriteService"]
