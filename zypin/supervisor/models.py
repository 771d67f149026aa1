from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ProcessRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    pid: int = Field(gt=0)
    start_time: str = Field(alias="startTime")

    @classmethod
    def started_now(cls, name: str, pid: int) -> "ProcessRecord":
        return cls(name=name, pid=pid, start_time=datetime.now(timezone.utc).isoformat())

    def to_state(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class StatusPayload(BaseModel):
    running: int
    packages: List[Any]
