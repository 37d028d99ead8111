"""
Payload normalization

Turns an upstream queue-system body into a CallEntity. Formats are tried in a
fixed order and the first whose predicate matches parses the body; a body
that matches none fails with UnknownFormatError.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from callpanel.errors import PayloadValidationError, UnknownFormatError
from callpanel.schemas.call import CallEntity, SgaPayload, VersaPayload

VERSA_SOURCE = "Versa"
SGA_SOURCE = "NovoSGA"


@dataclass(frozen=True)
class PayloadFormat:
    source: str
    matches: Callable[[Dict[str, Any]], bool]
    parse: Callable[[Dict[str, Any], datetime], CallEntity]


def _new_id() -> str:
    return str(uuid.uuid4())


def _validate(model: Type[BaseModel], source: str, body: Dict[str, Any]):
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise PayloadValidationError(source, issues_from(e)) from e


def issues_from(error) -> List[Dict[str, Any]]:
    """Field-path addressable issues from a pydantic-style errors(); input values are omitted"""
    issues = []
    for err in error.errors():
        loc = [str(p) for p in err.get("loc", ())]
        issues.append({
            "path": ".".join(loc),
            "loc": loc,
            "msg": err.get("msg"),
            "type": err.get("type"),
        })
    return issues


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _format_number(n) -> str:
    if isinstance(n, float) and n.is_integer():
        return str(int(n))
    return str(n)


# ----- Versa -----

def _is_versa(body: Dict[str, Any]) -> bool:
    marker = body.get("source_system")
    return isinstance(marker, str) and VERSA_SOURCE in marker


def _parse_versa(body: Dict[str, Any], now: datetime) -> CallEntity:
    parsed = _validate(VersaPayload, VERSA_SOURCE, body)
    call = parsed.current_call
    return CallEntity(
        id=_new_id(),
        name=call.patient_name,
        destination=call.destination,
        professional=call.professional_name,
        timestamp=now,  # Versa carries no call time
        is_priority=False,  # nor any priority semantics
        raw_source=VERSA_SOURCE,
    )


# ----- NovoSGA -----

def _is_sga(body: Dict[str, Any]) -> bool:
    return isinstance(body.get("senha"), dict) and isinstance(body.get("local"), dict)


def _parse_sga(body: Dict[str, Any], now: datetime) -> CallEntity:
    parsed = _validate(SgaPayload, SGA_SOURCE, body)
    return CallEntity(
        id=_new_id(),
        name=parsed.senha.format,
        destination=f"{parsed.local.nome} {_format_number(parsed.numeroLocal)}",
        professional=parsed.usuario.login if parsed.usuario else None,
        timestamp=_parse_timestamp(parsed.dataChamada) or now,
        is_priority=parsed.prioridade.peso > 0,
        raw_source=SGA_SOURCE,
    )


FORMATS: Tuple[PayloadFormat, ...] = (
    PayloadFormat(VERSA_SOURCE, _is_versa, _parse_versa),
    PayloadFormat(SGA_SOURCE, _is_sga, _parse_sga),
)


def detect_format(body: Any) -> Optional[PayloadFormat]:
    if not isinstance(body, dict):
        return None
    for fmt in FORMATS:
        if fmt.matches(body):
            return fmt
    return None


def normalize(body: Any, now: Optional[datetime] = None) -> CallEntity:
    """Normalize an upstream body into a CallEntity.

    Raises:
        UnknownFormatError: body matches no known upstream format
        PayloadValidationError: body matched a format but failed its schema
    """
    fmt = detect_format(body)
    if fmt is None:
        raise UnknownFormatError()
    return fmt.parse(body, now or datetime.now(timezone.utc))
