from rankforge.models.advance import (
    AdvancementOptions,
    AdvanceRecord,
    AdvanceSummary,
    AdvanceType,
    AttributeAdvanceOption,
    HindranceAction,
    HindranceAdvanceOption,
    SkillAdvanceOption,
)
from rankforge.models.catalog import (
    Ancestry,
    ArcaneBackground,
    Attribute,
    Catalog,
    Edge,
    Gear,
    Hindrance,
    PackItem,
    Power,
    Rank,
    Severity,
    Skill,
)
from rankforge.models.character import (
    CharacterAttribute,
    CharacterDraft,
    CharacterEdge,
    CharacterGear,
    CharacterHindrance,
    CharacterPower,
    CharacterSkill,
)
from rankforge.models.character_context import CharacterContext
from rankforge.models.die import DieRank, format_die
from rankforge.models.failure import (
    ApiResponse,
    DataIntegrityError,
    DraftStateError,
    FailureDetail,
    FailureKind,
    KnownError,
    NotFoundError,
    OutcomeType,
    RuleValidationError,
    create_known_failure,
    create_refusal,
    create_success,
    create_unknown_failure,
    finalize_response,
    is_finalized,
    run_engine_command,
)
from rankforge.models.ledger import Category, PointLedger
from rankforge.models.modifier import (
    DerivedStat,
    Modifier,
    ModifierTargetType,
    ModifierValueType,
)
from rankforge.models.requirement import (
    NodeType,
    Requirement,
    RequirementNode,
    RequirementStatus,
    RequirementType,
    evaluate_requirements,
    unmet_requirements,
)

__all__ = [
    # Advances
    "AdvanceRecord",
    "AdvanceSummary",
    "AdvanceType",
    "AdvancementOptions",
    "AttributeAdvanceOption",
    "HindranceAction",
    "HindranceAdvanceOption",
    "SkillAdvanceOption",
    # Catalog
    "Ancestry",
    "ArcaneBackground",
    "Attribute",
    "Catalog",
    "Edge",
    "Gear",
    "Hindrance",
    "PackItem",
    "Power",
    "Rank",
    "Severity",
    "Skill",
    # Character
    "CharacterAttribute",
    "CharacterContext",
    "CharacterDraft",
    "CharacterEdge",
    "CharacterGear",
    "CharacterHindrance",
    "CharacterPower",
    "CharacterSkill",
    # Dice
    "DieRank",
    "format_die",
    # Failure
    "ApiResponse",
    "DataIntegrityError",
    "DraftStateError",
    "FailureDetail",
    "FailureKind",
    "KnownError",
    "NotFoundError",
    "OutcomeType",
    "RuleValidationError",
    "create_known_failure",
    "create_refusal",
    "create_success",
    "create_unknown_failure",
    "finalize_response",
    "is_finalized",
    "run_engine_command",
    # Ledger
    "Category",
    "PointLedger",
    # Modifiers
    "DerivedStat",
    "Modifier",
    "ModifierTargetType",
    "ModifierValueType",
    # Requirements
    "NodeType",
    "Requirement",
    "RequirementNode",
    "RequirementStatus",
    "RequirementType",
    "evaluate_requirements",
    "unmet_requirements",
]
