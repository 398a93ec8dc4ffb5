"""Node definitions for the canonical character-card Draft.

Every node is a frozen dataclass so that a Draft is immutable once
built; transforms produce new nodes with ``dataclasses.replace``.
Sequences are stored as tuples.  Opaque passthrough data (entry
``raw_extensions``, ``raw.dataExtensions``, tavern-helper ``variables``)
is kept as plain dicts and never interpreted.

Enum values are the wire strings used in the JSON form of a Draft, so
``WorldbookPosition("at_depth_user")`` round-trips with ``.value``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Light(Enum):
    """Worldbook activation mode: constant (blue) or keyword-gated (green)."""

    BLUE = "blue"
    GREEN = "green"


class SecondaryLogic(Enum):
    """How secondary keys combine with the primary keys of an entry."""

    AND_ANY = "and_any"
    AND_ALL = "and_all"
    NOT_ALL = "not_all"
    NOT_ANY = "not_any"


class WorldbookPosition(Enum):
    """The ten insertion slots a worldbook entry may target."""

    BEFORE_CHAR = "before_char"
    AFTER_CHAR = "after_char"
    BEFORE_AUTHOR_NOTE = "before_author_note"
    AFTER_AUTHOR_NOTE = "after_author_note"
    AT_DEPTH_SYSTEM = "at_depth_system"
    AT_DEPTH_USER = "at_depth_user"
    AT_DEPTH_ASSISTANT = "at_depth_assistant"
    BEFORE_EXAMPLE_MESSAGES = "before_example_messages"
    AFTER_EXAMPLE_MESSAGES = "after_example_messages"
    OUTLET = "outlet"

    @property
    def is_at_depth(self) -> bool:
        """Return True for the three depth-injected positions."""
        return self in _AT_DEPTH_POSITIONS


_AT_DEPTH_POSITIONS = frozenset(
    {
        WorldbookPosition.AT_DEPTH_SYSTEM,
        WorldbookPosition.AT_DEPTH_USER,
        WorldbookPosition.AT_DEPTH_ASSISTANT,
    }
)


class FindStyle(Enum):
    """How a regex script stores its find pattern."""

    SLASH = "slash"
    RAW = "raw"


class TaskStatus(Enum):
    """Lifecycle state of a vibe-plan task."""

    TODO = "todo"
    DOING = "doing"
    DONE = "done"
    BLOCKED = "blocked"


class NextActionType(Enum):
    """Who the driving loop should ask next."""

    ASK_MODEL = "ask_model"
    ASK_USER = "ask_user"


# ---------------------------------------------------------------------------
# Card
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CardFields:
    """The textual character-card fields."""

    name: str = ""
    description: str = ""
    personality: str = ""
    scenario: str = ""
    first_mes: str = ""
    mes_example: str = ""
    creator_notes: str = ""
    system_prompt: str = ""
    post_history_instructions: str = ""
    alternate_greetings: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


CARD_TEXT_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "personality",
    "scenario",
    "first_mes",
    "mes_example",
    "creator_notes",
    "system_prompt",
    "post_history_instructions",
)


# ---------------------------------------------------------------------------
# Worldbook
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AtDepth:
    """Depth at which an ``at_depth_*`` entry is injected."""

    depth: int


@dataclass(frozen=True)
class WorldbookEntry:
    """A single lore entry.

    Parameters
    ----------
    id:
        Non-negative integer once the entry list has been repaired by
        ``ensure_worldbook_entry_ids``; a freshly normalized standalone
        entry may still carry ``None`` or an unparsed string.
    at_depth:
        Present only when ``position.is_at_depth``.
    raw_extensions:
        Unknown external extension keys, carried verbatim.
    """

    id: Union[int, str, None] = None
    enabled: bool = True
    light: Light = Light.BLUE
    keys: tuple[str, ...] = ()
    secondary_keys: tuple[str, ...] = ()
    secondary_logic: SecondaryLogic = SecondaryLogic.AND_ANY
    comment: str = ""
    content: str = ""
    position: WorldbookPosition = WorldbookPosition.AFTER_CHAR
    at_depth: AtDepth | None = None
    order: Union[int, float] = 100
    use_regex: bool = True
    raw_extensions: dict[str, Any] | None = None


@dataclass(frozen=True)
class Worldbook:
    """The lorebook attached to the card."""

    name: str = ""
    entries: tuple[WorldbookEntry, ...] = ()


# ---------------------------------------------------------------------------
# Regex scripts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegexFind:
    """Find pattern of a regex script."""

    pattern: str = ""
    flags: str = ""
    style: FindStyle = FindStyle.RAW


@dataclass(frozen=True)
class RegexOptions:
    """Execution options of a regex script."""

    run_on_edit: bool = False
    substitute_regex: int = 0
    min_depth: int | None = None
    max_depth: int | None = None


@dataclass(frozen=True)
class RegexScript:
    """A find/replace script applied to chat text or prompts."""

    id: str = ""
    name: str = ""
    enabled: bool = True
    placement: tuple[int, ...] = ()
    find: RegexFind = field(default_factory=RegexFind)
    replace: str = ""
    trim_strings: tuple[str, ...] = ()
    markdown_only: bool = False
    prompt_only: bool = False
    options: RegexOptions = field(default_factory=RegexOptions)


# ---------------------------------------------------------------------------
# Tavern helper
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScriptButton:
    """Button configuration of a helper script; ``buttons`` is opaque."""

    enabled: bool = True
    buttons: tuple[Any, ...] = ()


@dataclass(frozen=True)
class HelperScript:
    """A tavern-helper script.  ``type`` is always ``"script"``."""

    id: str = ""
    name: str = ""
    type: str = "script"
    info: str = ""
    enabled: bool = True
    content: str = ""
    button: ScriptButton = field(default_factory=ScriptButton)
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TavernHelperPack:
    """Helper scripts plus the free-form variable bag."""

    scripts: tuple[HelperScript, ...] = ()
    variables: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Progress / validation / meta
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NextAction:
    """Machine-readable instruction for the driving loop."""

    type: NextActionType = NextActionType.ASK_USER
    text: str = ""


@dataclass(frozen=True)
class ProgressStep:
    """One row of the progress checklist."""

    index: int
    name: str
    status: TaskStatus = TaskStatus.TODO
    done_criteria: tuple[str, ...] = ()
    blockers: tuple[str, ...] = ()
    next_action: NextAction = field(default_factory=NextAction)


@dataclass(frozen=True)
class Progress:
    """Progress banner derived from the embedded vibe plan."""

    step_index: int = 1
    step_name: str = "Initialize"
    total_steps: int | None = None
    steps: tuple[ProgressStep, ...] = ()
    next_action: NextAction | None = None


@dataclass(frozen=True)
class DraftMeta:
    """Format identifiers, last update time and current progress."""

    spec: str = "chara_card_v3"
    spec_version: str = "3.0"
    updated_at: str = ""
    progress: Progress = field(default_factory=Progress)


@dataclass(frozen=True)
class Validation:
    """Last lint result carried inside the Draft."""

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class RawBag:
    """Opaque passthrough of unknown card extensions (and ``vibePlan``)."""

    data_extensions: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Draft root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CardDraft:
    """Root node: the canonical character card under construction."""

    meta: DraftMeta = field(default_factory=DraftMeta)
    card: CardFields = field(default_factory=CardFields)
    worldbook: Worldbook = field(default_factory=Worldbook)
    regex_scripts: tuple[RegexScript, ...] = ()
    tavern_helper: TavernHelperPack = field(default_factory=TavernHelperPack)
    validation: Validation = field(default_factory=Validation)
    raw: RawBag = field(default_factory=RawBag)

    @property
    def vibe_plan_raw(self) -> Any:
        """Return the embedded plan as stored (un-normalized), or ``None``."""
        return self.raw.data_extensions.get("vibePlan")


# ---------------------------------------------------------------------------
# Vibe plan
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Task:
    """One node of the vibe-plan dependency graph."""

    id: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    depends_on: tuple[str, ...] = ()
    kind_hint: str = ""
    patch_hints: tuple[str, ...] = ()
    done_criteria: tuple[str, ...] = ()
    notes: str = ""


@dataclass(frozen=True)
class VibePlan:
    """Task DAG embedded under ``raw.dataExtensions.vibePlan``."""

    version: str = "v1"
    goal: str = ""
    created_at: str = ""
    updated_at: str = ""
    tasks: tuple[Task, ...] = ()
    current_task_id: str = ""

    def task_by_id(self, task_id: str) -> Task | None:
        """Return the task with ``task_id`` or ``None``."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None
