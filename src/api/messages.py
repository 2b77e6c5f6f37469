"""
Wire messages exchanged between the two peers of an online match.

Every message is a tagged record (the `kind` field). Keys are camelCase on the wire.
The transport only has to deliver them reliably and in order.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from src.core.exceptions import RemoteProtocolError
from src.core.shared_types import ActionKind, Level

Coordinate = Annotated[int, Field(ge=0, le=8)]
HandIndex = Annotated[int, Field(ge=0)]


class WireMessage(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, extra="forbid"
    )


class ConfigMessage(WireMessage):
    """Sent by the host once the level is chosen"""

    kind: Literal["CONFIG"] = "CONFIG"
    level: Level
    host_is_first_side: bool


class MoveMessage(WireMessage):
    kind: Literal["MOVE"] = "MOVE"
    from_row: Coordinate
    from_col: Coordinate
    to_row: Coordinate
    to_col: Coordinate
    # only used to pick between several kinds the receiver generates itself
    action_kind: ActionKind


class DropMessage(WireMessage):
    kind: Literal["DROP"] = "DROP"
    hand_index: HandIndex
    row: Coordinate
    col: Coordinate


class DraftDropMessage(WireMessage):
    kind: Literal["DRAFT_DROP"] = "DRAFT_DROP"
    hand_index: HandIndex
    row: Coordinate
    col: Coordinate


class PassMessage(WireMessage):
    kind: Literal["PASS"] = "PASS"


class DoneMessage(WireMessage):
    kind: Literal["DONE"] = "DONE"


Message = Annotated[
    Union[
        ConfigMessage,
        MoveMessage,
        DropMessage,
        DraftDropMessage,
        PassMessage,
        DoneMessage,
    ],
    Field(discriminator="kind"),
]

MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)


def parse_message(payload: dict[str, Any] | str | bytes) -> Message:
    """Validate an incoming payload (a dict or JSON text). Anything malformed raises RemoteProtocolError."""
    try:
        if isinstance(payload, (str, bytes)):
            return MESSAGE_ADAPTER.validate_json(payload)
        return MESSAGE_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise RemoteProtocolError(f"Malformed message: {exc}") from exc


def encode_message(message: WireMessage) -> dict[str, Any]:
    """JSON-ready dict with camelCase keys"""
    return message.model_dump(mode="json", by_alias=True)

