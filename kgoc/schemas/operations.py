from typing import Optional

from pydantic import BaseModel, ConfigDict


class MaintenanceRequestCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    wellNumber: Optional[str] = None
    partId: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    requestedBy: Optional[str] = None


class MaintenanceStatusUpdate(BaseModel):
    status: str
    notes: str = ""


class WellTestCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    wellNumber: Optional[str] = None
    api: Optional[str] = None
    wellType: Optional[str] = None
    artificialLiftType: Optional[str] = None
    flowRate: Optional[float] = None
    gasRate: Optional[float] = None
    waterCut: Optional[float] = None
    h2s: Optional[float] = None
    co2: Optional[float] = None
    salinity: Optional[float] = None
    wellheadPressure: Optional[float] = None
    wellheadTemperature: Optional[float] = None
    chokeSize: Optional[float] = None
    testDate: Optional[str] = None
    notes: Optional[str] = None
    createdBy: Optional[str] = None


class WellTestUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: Optional[int] = None


class ServiceRequestCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    wellNumber: Optional[str] = None
    serviceType: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    requestedBy: Optional[str] = None
    scheduledDate: Optional[str] = None


class ServiceRequestUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")
