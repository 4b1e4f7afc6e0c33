from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict


class NotificationCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    targetUsers: Optional[Union[str, List[str]]] = None
    expiresAt: Optional[str] = None


class SystemLogCreate(BaseModel):
    level: str = "info"
    message: str
    details: Optional[Dict[str, Any]] = None


class MaintenanceModeUpdate(BaseModel):
    enabled: bool
    message: str = ""
