"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    principal: Optional[Dict[str, Any]] = None

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    profile_name: Optional[str] = None  # business / company / store name


# ---- Role ----
class RoleBrief(BaseModel):
    id: int
    code: str
    name: str
    level: int
    is_super_admin: bool = False

    class Config:
        from_attributes = True

class RoleCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    level: int = Field(1, ge=0)
    is_super_admin: bool = False

class RoleUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    level: Optional[int] = Field(None, ge=0)
    is_super_admin: Optional[bool] = None

class RoleOut(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    level: int
    is_super_admin: bool
    is_deleted: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Principal ----
class PrincipalOut(BaseModel):
    id: int
    email: str
    name: str
    phone: Optional[str] = None
    is_active: bool = True
    role: Optional[RoleBrief] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class PrincipalCreate(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    role_code: str = Field(..., min_length=1)
    phone: Optional[str] = None
    profile_name: Optional[str] = None

class PrincipalStatusUpdate(BaseModel):
    is_active: bool

class PrincipalRoleUpdate(BaseModel):
    role_code: str = Field(..., min_length=1)

class ProfileUpdate(BaseModel):
    email: Optional[str] = Field(None, min_length=4)
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    profile_name: Optional[str] = None  # business / company / store name or headline

class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)
    confirm_password: str = Field(..., min_length=6)


# ---- Module ----
class SubModuleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    route: str = Field(..., min_length=1, max_length=255)
    icon: Optional[str] = None
    position: int = 0
    is_active: bool = True
    dashboard_view: bool = False

class SubModuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    route: Optional[str] = Field(None, min_length=1, max_length=255)
    icon: Optional[str] = None
    position: Optional[int] = None
    is_active: Optional[bool] = None
    dashboard_view: Optional[bool] = None

class SubModuleOut(BaseModel):
    id: int
    module_id: int
    name: str
    route: str
    icon: Optional[str] = None
    position: int = 0
    is_active: bool = True
    dashboard_view: bool = False
    is_deleted: bool = False

    class Config:
        from_attributes = True

class ModuleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    route: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=300)
    icon: Optional[str] = None
    position: int = 0
    dashboard_view: bool = False
    sub_modules: List[SubModuleCreate] = []

class ModuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    route: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=300)
    icon: Optional[str] = None
    position: Optional[int] = None
    is_active: Optional[bool] = None
    dashboard_view: Optional[bool] = None

class ModuleOut(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    route: str
    position: int = 0
    is_active: bool = True
    dashboard_view: bool = False
    is_deleted: bool = False
    sub_modules: List[SubModuleOut] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ReorderItem(BaseModel):
    id: int
    position: int

class ReorderRequest(BaseModel):
    items: List[ReorderItem] = Field(..., min_length=1)


# ---- Permission ----
class PermissionCreate(BaseModel):
    role_id: int
    module_id: int
    sub_module_id: Optional[int] = None
    can_view: bool = False
    can_add: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_view_all: bool = False

class PermissionUpdate(BaseModel):
    can_view: Optional[bool] = None
    can_add: Optional[bool] = None
    can_edit: Optional[bool] = None
    can_delete: Optional[bool] = None
    can_view_all: Optional[bool] = None
    is_active: Optional[bool] = None

class PermissionOut(BaseModel):
    id: int
    role_id: int
    module_id: int
    sub_module_id: Optional[int] = None
    can_view: bool
    can_add: bool
    can_edit: bool
    can_delete: bool
    can_view_all: bool
    is_active: bool
    is_deleted: bool = False
    granted_by_type: Optional[str] = None
    granted_by_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_type: Optional[str] = None
    actor_id: Optional[int] = None
    actor_email: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    detail: Optional[Any] = None
