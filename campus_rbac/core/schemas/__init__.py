from campus_rbac.core.schemas.base import BaseSchema
from campus_rbac.core.schemas.base_filter import BaseFilter
from campus_rbac.core.schemas.api_response import ApiResponse, PaginatedResponse

__all__ = ["BaseSchema", "BaseFilter", "ApiResponse", "PaginatedResponse"]
