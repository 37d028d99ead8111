from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr


class CallEntity(BaseModel):
    """Canonical patient call, broadcast to displays as `call_update`"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    destination: str
    professional: Optional[str] = None
    timestamp: datetime
    is_priority: bool = Field(..., alias="isPriority")
    raw_source: str = Field(..., alias="rawSource")

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# Upstream payloads. Unknown fields are ignored (pydantic default), only the
# fields used to build a CallEntity are declared.

class VersaCurrentCall(BaseModel):
    patient_name: StrictStr
    destination: StrictStr
    professional_name: Optional[StrictStr] = None


class VersaPayload(BaseModel):
    source_system: StrictStr
    current_call: VersaCurrentCall


class SgaSenha(BaseModel):
    format: StrictStr


class SgaLocal(BaseModel):
    nome: StrictStr


class SgaPrioridade(BaseModel):
    peso: Union[StrictInt, StrictFloat]


class SgaUsuario(BaseModel):
    login: StrictStr


class SgaPayload(BaseModel):
    senha: SgaSenha
    local: SgaLocal
    numeroLocal: Union[StrictInt, StrictFloat]
    prioridade: SgaPrioridade
    usuario: Optional[SgaUsuario] = None
    dataChamada: Optional[StrictStr] = None
