"""
Tests for character creation rules.

These tests verify:
1. Hindrances earn points; removal forfeits them
2. Edges are bought with hindrance points and refunded on removal
3. Attribute and skill purchases spend and refund the right amounts
4. Lowering a stat drops edges that no longer qualify
5. Arcane backgrounds gate powers and grant power points
"""

import pytest
from conftest import (
    AGILITY,
    ARCANE_BACKGROUND,
    ARMOR,
    ATHLETICS,
    BAD_EYES_MAJOR,
    BLAST,
    BOLT,
    BRAWNY,
    DWARF,
    FIGHTING,
    KEEN_SENSES,
    LOYAL,
    MAGIC,
    QUICK,
    RICH,
    ROPE,
    SHIELD,
    SMARTS,
    SPELLCASTING,
    STRENGTH,
    TRADEMARK_WEAPON,
    WANTED,
)

from rankforge.constants import (
    SOURCE_ADVANCEMENT,
    SOURCE_HINDRANCE_POINTS,
    STARTING_ATTRIBUTE_POINTS,
    STARTING_SKILL_POINTS,
    STARTING_WEALTH,
)
from rankforge.models.catalog import Catalog
from rankforge.models.character import CharacterDraft, CharacterEdge, CharacterHindrance
from rankforge.models.die import DieRank
from rankforge.models.failure import FailureKind, NotFoundError, RuleValidationError
from rankforge.models.ledger import Category
from rankforge.models.modifier import Modifier, ModifierTargetType, ModifierValueType
from rankforge.services.character_builder import (
    add_arcane_background,
    add_edge,
    add_gear,
    add_hindrance,
    add_power,
    allocate_hindrance_points,
    change_attribute,
    change_skill,
    check_attribute_decrement_impact,
    new_character,
    power_slots,
    remove_edge,
    remove_hindrance,
    remove_invalid_edges,
    set_ancestry,
    set_gear_equipped,
    skill_step_cost,
)


def with_edge_points(draft: CharacterDraft, catalog: Catalog, edges: int) -> CharacterDraft:
    """Take Wanted (2 points) per edge and convert the points into edges."""
    draft = add_hindrance(draft, catalog, WANTED)
    if edges > 1:
        draft = add_hindrance(draft, catalog, BAD_EYES_MAJOR)
    return allocate_hindrance_points(draft, catalog, Category.EDGES, edges)


class TestNewCharacter:
    def test_starting_values(self, catalog: Catalog) -> None:
        """Attributes at base, core skills at d4, others untrained."""
        draft = new_character(catalog, "Ayla", is_wild_card=False)
        assert draft.name == "Ayla"
        assert not draft.is_wild_card
        assert [a.die for a in draft.attributes] == [DieRank.d4()] * 5
        assert draft.skill(ATHLETICS).die == DieRank.d4()
        assert draft.skill(FIGHTING).die is None
        assert len(draft.skills) == len(catalog.skills)
        assert draft.ledger.available(Category.ATTRIBUTES) == STARTING_ATTRIBUTE_POINTS
        assert draft.ledger.available(Category.SKILLS) == STARTING_SKILL_POINTS
        assert draft.wealth == STARTING_WEALTH
        assert draft.advances == []


# =============================================================================
# HINDRANCES
# =============================================================================


class TestHindrances:
    """Tests for add_hindrance and remove_hindrance."""

    def test_add_earns_points(self, draft: CharacterDraft, catalog: Catalog) -> None:
        result = add_hindrance(draft, catalog, WANTED)
        assert result.find_hindrance(WANTED) is not None
        assert result.ledger.hindrance_points_earned == 2
        assert draft.hindrances == []

    def test_kept_in_id_order(self, draft: CharacterDraft, catalog: Catalog) -> None:
        result = add_hindrance(add_hindrance(draft, catalog, WANTED), catalog, LOYAL)
        assert [h.hindrance.id for h in result.hindrances] == [LOYAL, WANTED]

    def test_duplicate_rejected(self, draft: CharacterDraft, catalog: Catalog) -> None:
        result = add_hindrance(draft, catalog, LOYAL)
        with pytest.raises(RuleValidationError) as exc_info:
            add_hindrance(result, catalog, LOYAL)
        assert exc_info.value.kind == FailureKind.DUPLICATE_SELECTION

    def test_remove_forfeits_points(self, draft: CharacterDraft, catalog: Catalog) -> None:
        result = remove_hindrance(add_hindrance(draft, catalog, LOYAL), catalog, LOYAL)
        assert result.find_hindrance(LOYAL) is None
        assert result.ledger.hindrance_points_earned == 0

    def test_remove_spent_points_rejected(self, draft: CharacterDraft, catalog: Catalog) -> None:
        """Points already converted into an edge cannot be forfeited."""
        funded = with_edge_points(draft, catalog, 1)
        with pytest.raises(RuleValidationError) as exc_info:
            remove_hindrance(funded, catalog, WANTED)
        assert exc_info.value.kind == FailureKind.INSUFFICIENT_POINTS
        assert funded.find_hindrance(WANTED) is not None

    def test_remove_only_chosen(self, draft: CharacterDraft, catalog: Catalog) -> None:
        """A hindrance from another source is not removable here."""
        draft.insert_hindrance(
            CharacterHindrance(catalog.hindrance(LOYAL), source=SOURCE_ADVANCEMENT)
        )
        with pytest.raises(NotFoundError):
            remove_hindrance(draft, catalog, LOYAL)


# =============================================================================
# EDGES
# =============================================================================


class TestEdges:
    """Tests for add_edge and remove_edge."""

    def test_add_spends_edge_point(self, draft: CharacterDraft, catalog: Catalog) -> None:
        result = add_edge(with_edge_points(draft, catalog, 1), catalog, KEEN_SENSES)
        entry = result.find_edge(KEEN_SENSES)
        assert entry is not None
        assert entry.source == SOURCE_HINDRANCE_POINTS
        assert result.ledger.edge_points_spent == 1
        assert result.ledger.available(Category.EDGES) == 0

    def test_add_without_points(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError) as exc_info:
            add_edge(draft, catalog, KEEN_SENSES)
        assert exc_info.value.kind == FailureKind.INSUFFICIENT_POINTS

    def test_add_requirements_checked(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError) as exc_info:
            add_edge(with_edge_points(draft, catalog, 1), catalog, BRAWNY)
        assert exc_info.value.kind == FailureKind.REQUIREMENTS_NOT_MET
        assert "Strength d6+" in exc_info.value.message

    def test_requirements_use_effective_dice(self, draft: CharacterDraft, catalog: Catalog) -> None:
        """Dwarf Vigor d6 plus bought Strength d6 qualifies for Brawny."""
        ready = change_attribute(set_ancestry(draft, catalog, DWARF), catalog, STRENGTH, True)
        result = add_edge(with_edge_points(ready, catalog, 1), catalog, BRAWNY)
        assert result.has_edge(BRAWNY)

    def test_duplicate_rejected(self, draft: CharacterDraft, catalog: Catalog) -> None:
        result = add_edge(with_edge_points(draft, catalog, 2), catalog, KEEN_SENSES)
        with pytest.raises(RuleValidationError) as exc_info:
            add_edge(result, catalog, KEEN_SENSES)
        assert exc_info.value.kind == FailureKind.DUPLICATE_SELECTION

    def test_repeatable_needs_notes(self, draft: CharacterDraft, catalog: Catalog) -> None:
        draft.skill(FIGHTING).die = DieRank.d8()
        funded = with_edge_points(draft, catalog, 1)
        with pytest.raises(RuleValidationError) as exc_info:
            add_edge(funded, catalog, TRADEMARK_WEAPON)
        assert exc_info.value.kind == FailureKind.INVALID_INPUT
        assert add_edge(funded, catalog, TRADEMARK_WEAPON, notes="Axe").has_edge(TRADEMARK_WEAPON)

    def test_wealth_bonus(self, draft: CharacterDraft, catalog: Catalog) -> None:
        """Rich adds wealth; removing it takes the wealth back."""
        rich = add_edge(with_edge_points(draft, catalog, 1), catalog, RICH)
        assert rich.wealth == STARTING_WEALTH + 1000
        removed = remove_edge(rich, catalog, RICH)
        assert removed.wealth == STARTING_WEALTH
        assert removed.ledger.edge_points_spent == 0

    def test_remove_only_bought_edges(self, draft: CharacterDraft, catalog: Catalog) -> None:
        draft.edges.append(CharacterEdge(catalog.edge(RICH), source=SOURCE_ADVANCEMENT))
        with pytest.raises(NotFoundError):
            remove_edge(draft, catalog, RICH)

    def test_remove_invalid_edges(self, draft: CharacterDraft, catalog: Catalog) -> None:
        """Bought edges whose requirements fail are dropped and refunded."""
        funded = with_edge_points(draft, catalog, 1)
        funded.edges.append(CharacterEdge(catalog.edge(QUICK), source=SOURCE_HINDRANCE_POINTS))
        funded.ledger.spend(Category.EDGES, 1)
        result = remove_invalid_edges(funded, catalog)
        assert not result.has_edge(QUICK)
        assert result.ledger.edge_points_spent == 0
        assert funded.has_edge(QUICK)


# =============================================================================
# ATTRIBUTES AND SKILLS
# =============================================================================


class TestAttributes:
    """Tests for change_attribute."""

    def test_increment_spends(self, draft: CharacterDraft, catalog: Catalog) -> None:
        result = change_attribute(draft, catalog, AGILITY, increment=True)
        assert result.attribute(AGILITY).die == DieRank.d6()
        assert result.ledger.attribute_points_spent == 1

    def test_decrement_refunds(self, draft: CharacterDraft, catalog: Catalog) -> None:
        up = change_attribute(draft, catalog, AGILITY, increment=True)
        down = change_attribute(up, catalog, AGILITY, increment=False)
        assert down == draft

    def test_below_base_rejected(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError) as exc_info:
            change_attribute(draft, catalog, AGILITY, increment=False)
        assert exc_info.value.kind == FailureKind.AT_MINIMUM

    def test_above_d12_rejected(self, draft: CharacterDraft, catalog: Catalog) -> None:
        draft.attribute(AGILITY).die = DieRank.d12()
        with pytest.raises(RuleValidationError) as exc_info:
            change_attribute(draft, catalog, AGILITY, increment=True)
        assert exc_info.value.kind == FailureKind.AT_MAXIMUM

    def test_out_of_points(self, draft: CharacterDraft, catalog: Catalog) -> None:
        for _ in range(4):
            draft = change_attribute(draft, catalog, AGILITY, increment=True)
        draft = change_attribute(draft, catalog, SMARTS, increment=True)
        with pytest.raises(RuleValidationError) as exc_info:
            change_attribute(draft, catalog, SMARTS, increment=True)
        assert exc_info.value.kind == FailureKind.INSUFFICIENT_POINTS

    def test_decrement_drops_invalid_edges(self, draft: CharacterDraft, catalog: Catalog) -> None:
        """Lowering Agility below d8 loses Quick and refunds its edge point."""
        agile = change_attribute(
            change_attribute(draft, catalog, AGILITY, True), catalog, AGILITY, True
        )
        quick = add_edge(with_edge_points(agile, catalog, 1), catalog, QUICK)
        assert check_attribute_decrement_impact(quick, catalog, AGILITY) == ["Quick"]

        lowered = change_attribute(quick, catalog, AGILITY, increment=False)
        assert not lowered.has_edge(QUICK)
        assert lowered.ledger.edge_points_spent == 0

    def test_decrement_impact_at_base(self, draft: CharacterDraft, catalog: Catalog) -> None:
        assert check_attribute_decrement_impact(draft, catalog, AGILITY) == []

    def test_decrement_impact_uses_effective_die(
        self, draft: CharacterDraft, catalog: Catalog
    ) -> None:
        """A +1 step on Agility keeps d8 effective after the purchased die drops."""
        agile = change_attribute(
            change_attribute(draft, catalog, AGILITY, True), catalog, AGILITY, True
        )
        agile.modifiers.append(
            Modifier(99, ModifierTargetType.ATTRIBUTE, "Agility", ModifierValueType.DIE_INCREMENT)
        )
        quick = add_edge(with_edge_points(agile, catalog, 1), catalog, QUICK)
        assert check_attribute_decrement_impact(quick, catalog, AGILITY) == []
        assert change_attribute(quick, catalog, AGILITY, increment=False).has_edge(QUICK)


class TestSkills:
    """Tests for change_skill."""

    def test_train_untrained(self, draft: CharacterDraft, catalog: Catalog) -> None:
        result = change_skill(draft, catalog, FIGHTING, increment=True)
        assert result.skill(FIGHTING).die == DieRank.d4()
        assert result.ledger.skill_points_spent == 1

    def test_cost_above_linked_attribute(self, draft: CharacterDraft, catalog: Catalog) -> None:
        """Raising past the linked attribute costs 2 per step."""
        trained = change_skill(draft, catalog, FIGHTING, increment=True)
        assert skill_step_cost(trained, catalog, FIGHTING) == 2
        raised = change_skill(trained, catalog, FIGHTING, increment=True)
        assert raised.skill(FIGHTING).die == DieRank.d6()
        assert raised.ledger.skill_points_spent == 3

    def test_cost_uses_effective_attribute(self, draft: CharacterDraft, catalog: Catalog) -> None:
        agile = change_attribute(draft, catalog, AGILITY, True)
        trained = change_skill(agile, catalog, FIGHTING, increment=True)
        assert skill_step_cost(trained, catalog, FIGHTING) == 1

    def test_decrement_refunds_and_untrains(self, draft: CharacterDraft, catalog: Catalog) -> None:
        """Non-core skills go back to untrained from d4."""
        raised = change_skill(change_skill(draft, catalog, FIGHTING, True), catalog, FIGHTING, True)
        lowered = change_skill(raised, catalog, FIGHTING, increment=False)
        assert lowered.ledger.skill_points_spent == 1
        untrained = change_skill(lowered, catalog, FIGHTING, increment=False)
        assert untrained.skill(FIGHTING).die is None
        assert untrained == draft

    def test_core_skill_floor(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError) as exc_info:
            change_skill(draft, catalog, ATHLETICS, increment=False)
        assert exc_info.value.kind == FailureKind.AT_MINIMUM

    def test_untrained_cannot_decrement(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError):
            change_skill(draft, catalog, FIGHTING, increment=False)

    def test_skill_maximum(self, draft: CharacterDraft, catalog: Catalog) -> None:
        draft.skill(FIGHTING).die = DieRank.d12()
        with pytest.raises(RuleValidationError) as exc_info:
            change_skill(draft, catalog, FIGHTING, increment=True)
        assert exc_info.value.kind == FailureKind.AT_MAXIMUM


class TestAllocateHindrancePoints:
    def test_allocate_and_deallocate(self, draft: CharacterDraft, catalog: Catalog) -> None:
        held = add_hindrance(draft, catalog, WANTED)
        allocated = allocate_hindrance_points(held, catalog, Category.SKILLS, 2)
        assert allocated.ledger.available(Category.SKILLS) == STARTING_SKILL_POINTS + 2
        back = allocate_hindrance_points(allocated, catalog, Category.SKILLS, -2)
        assert back == held

    def test_allocate_without_points(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError):
            allocate_hindrance_points(draft, catalog, Category.ATTRIBUTES, 1)


# =============================================================================
# ARCANE BACKGROUNDS AND POWERS
# =============================================================================


class TestArcane:
    """Tests for arcane backgrounds and powers."""

    @pytest.fixture
    def mage(self, draft: CharacterDraft, catalog: Catalog) -> CharacterDraft:
        funded = with_edge_points(draft, catalog, 1)
        with_edge = add_edge(funded, catalog, ARCANE_BACKGROUND)
        return add_arcane_background(with_edge, catalog, MAGIC)

    def test_background_requires_edge(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError) as exc_info:
            add_arcane_background(draft, catalog, MAGIC)
        assert exc_info.value.kind == FailureKind.REQUIREMENTS_NOT_MET

    def test_background_grants_power_points(self, mage: CharacterDraft) -> None:
        assert [ab.id for ab in mage.arcane_backgrounds] == [MAGIC]
        assert mage.power_points == 10
        assert power_slots(mage) == 2

    def test_duplicate_background(self, mage: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError):
            add_arcane_background(mage, catalog, MAGIC)

    def test_powers_limited_by_slots(self, mage: CharacterDraft, catalog: Catalog) -> None:
        two = add_power(add_power(mage, catalog, BOLT), catalog, ARMOR)
        assert [p.power.id for p in two.powers] == [BOLT, ARMOR]
        with pytest.raises(RuleValidationError) as exc_info:
            add_power(two, catalog, BLAST)
        assert exc_info.value.kind == FailureKind.AT_MAXIMUM

    def test_power_requirements(self, mage: CharacterDraft, catalog: Catalog) -> None:
        """Blast needs Seasoned."""
        with pytest.raises(RuleValidationError) as exc_info:
            add_power(mage, catalog, BLAST)
        assert exc_info.value.kind == FailureKind.REQUIREMENTS_NOT_MET

    def test_power_needs_background(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError):
            add_power(draft, catalog, BOLT)

    def test_duplicate_power(self, mage: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError) as exc_info:
            add_power(add_power(mage, catalog, BOLT), catalog, BOLT)
        assert exc_info.value.kind == FailureKind.DUPLICATE_SELECTION

    def test_removing_edge_clears_arcane(self, mage: CharacterDraft, catalog: Catalog) -> None:
        """Dropping the Arcane Background edge drops backgrounds, powers and points."""
        with_power = add_power(mage, catalog, BOLT)
        result = remove_edge(with_power, catalog, ARCANE_BACKGROUND)
        assert result.arcane_backgrounds == []
        assert result.powers == []
        assert result.power_points == 0
        assert result.skill(SPELLCASTING).die is None


# =============================================================================
# ANCESTRY AND GEAR
# =============================================================================


class TestAncestryAndGear:
    def test_set_and_clear_ancestry(self, draft: CharacterDraft, catalog: Catalog) -> None:
        dwarf = set_ancestry(draft, catalog, DWARF)
        assert dwarf.ancestry is not None
        assert dwarf.ancestry.name == "Dwarf"
        assert set_ancestry(dwarf, catalog, None).ancestry is None

    def test_unknown_ancestry(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(NotFoundError):
            set_ancestry(draft, catalog, 99)

    def test_add_gear(self, draft: CharacterDraft, catalog: Catalog) -> None:
        result = add_gear(draft, catalog, ROPE, quantity=2)
        assert result.gear[0].quantity == 2
        assert not result.gear[0].is_equipped
        assert result.wealth == draft.wealth

    def test_add_gear_bad_quantity(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(RuleValidationError):
            add_gear(draft, catalog, ROPE, quantity=0)

    def test_equip_unknown_gear(self, draft: CharacterDraft, catalog: Catalog) -> None:
        with pytest.raises(NotFoundError):
            set_gear_equipped(draft, catalog, SHIELD, True)
