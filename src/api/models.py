"""Configuration models: validate externally supplied rulesets before a match starts"""

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from src.core.exceptions import InvalidLayoutError, InvalidRequestError
from src.core.shared_types import Level
from src.gungi.board import Board
from src.gungi.pieces import PieceType
from src.gungi.rulesets import FIXED_LAYOUT, Ruleset, SetupKind

PieceName = str
LayoutNotation = str


class RulesetConfig(BaseModel):
    """
    Ruleset as it arrives from outside (a settings file, a lobby form...).
    ---

    Keys may be camelCase (`maxStackHeight`) or snake_case (`max_stack_height`). Unknown keys are rejected.
    `initial_layout` is "draft", "fixed" (the standard layout) or the layout notation of a fixed board.
    `level` labels the ruleset. Only the preset of that level travels to a remote peer or into a GameModel snapshot.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    level: Level
    max_stack_height: int = Field(default=2, ge=1)
    can_marshal_stack: bool = False
    # "bettrayalEnabled" is the spelling used by older configuration files
    betrayal_enabled: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "betrayal_enabled", "betrayalEnabled", "bettrayalEnabled"
        ),
    )
    initial_layout: LayoutNotation = "fixed"
    excluded_pieces: list[PieceName] = Field(default_factory=list)

    @field_validator("initial_layout")
    @classmethod
    def validate_layout(cls, value: str) -> str:
        if value in ("fixed", "draft"):
            return value
        try:
            Board.from_notation(value)
        except InvalidLayoutError as exc:
            raise ValueError(
                f"initial_layout must be 'fixed', 'draft' or a layout notation: {exc}"
            ) from exc
        return value

    @field_validator("excluded_pieces")
    @classmethod
    def validate_piece_names(cls, value: list[PieceName]) -> list[PieceName]:
        known_names = [piece_type.value for piece_type in PieceType]
        unknown = [name for name in value if name not in known_names]
        if unknown:
            raise ValueError(
                f"Unknown piece names: {', '.join(unknown)}. \nPick from {', '.join(known_names)}"
            )
        if PieceType.MARSHAL.value in value:
            raise ValueError("The Marshal cannot be excluded.")
        return value

    def to_ruleset(self) -> Ruleset:
        is_draft = self.initial_layout == "draft"
        custom_layout = self.initial_layout not in ("fixed", "draft")
        return Ruleset(
            level=self.level,
            setup=SetupKind.DRAFT if is_draft else SetupKind.FIXED,
            max_stack_height=self.max_stack_height,
            can_marshal_stack=self.can_marshal_stack,
            betrayal_enabled=self.betrayal_enabled,
            excluded_types=frozenset(PieceType(name) for name in self.excluded_pieces),
            layout=self.initial_layout if custom_layout else FIXED_LAYOUT,
        )


def load_ruleset(data: dict) -> Ruleset:
    """Validate raw configuration data and build the domain Ruleset"""
    try:
        config = RulesetConfig.model_validate(data)
    except ValidationError as exc:
        raise InvalidRequestError(f"Invalid ruleset configuration: {exc}") from exc
    return config.to_ruleset()
