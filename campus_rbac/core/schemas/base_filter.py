from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class BaseFilter(BaseModel):
    """Paging and ordering shared by every list endpoint; subclasses add ``field__operator`` filters."""
    page: int = Field(default=1, ge=1, description="Page number (starts from 1)")
    page_size: Optional[int] = Field(default=20, ge=1, le=1000, description="Items per page")
    logic_operator: Literal["and", "or"] = Field(default="and", description="How filter conditions combine")
    sort: Optional[List[str]] = Field(default=None, description="Sort keys like role_name+ or created_at-")
