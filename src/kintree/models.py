"""Data classes for family tree entities."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from kintree.errors import ValidationError, ValidationReason


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class RelationType(str, Enum):
    """Relation of a second person to a first one, as used by edits."""

    PARENT = "parent"
    CHILD = "child"
    SPOUSE = "spouse"
    SIBLING = "sibling"


class ViewMode(str, Enum):
    FULL = "full"
    FOCUS = "focus"


class LayoutFallback(str, Enum):
    """Why a layout was simplified instead of fully computed."""

    OVERSIZED = "oversized"
    FOCUS_UNAVAILABLE = "focus_unavailable"


class WarningKind(str, Enum):
    RECIPROCITY_GAP = "reciprocity_gap"
    ORPHANED_REFERENCE = "orphaned_reference"
    TOO_MANY_PARENTS = "too_many_parents"
    CIRCULAR_ANCESTRY = "circular_ancestry"
    AGE_INCONSISTENCY = "age_inconsistency"
    PARENT_DIED_BEFORE_CHILD = "parent_died_before_child"
    LARGE_AGE_GAP = "large_age_gap"
    POTENTIAL_DUPLICATE = "potential_duplicate"


DESCRIPTIVE_FIELDS = (
    "name",
    "gender",
    "birth_year",
    "death_year",
    "occupation",
    "birthplace",
    "notes",
    "image",
)


@dataclass
class Person:
    id: str
    name: str
    gender: Gender
    birth_year: int
    death_year: int | None = None
    occupation: str | None = None
    birthplace: str | None = None
    notes: str | None = None
    image: str | None = None  # reference only, never the image bytes
    parents: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)
    spouses: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.gender = Gender(self.gender)
        if self.death_year is not None and self.death_year < self.birth_year:
            raise ValidationError(
                f"{self.name} cannot die ({self.death_year}) before being born "
                f"({self.birth_year})",
                ValidationReason.DEATH_BEFORE_BIRTH,
                person_id=self.id,
            )

    @property
    def first_name(self) -> str:
        tokens = self.name.split()
        return tokens[0].lower() if tokens else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "gender": self.gender.value,
            "birth_year": self.birth_year,
            "death_year": self.death_year,
            "occupation": self.occupation,
            "birthplace": self.birthplace,
            "notes": self.notes,
            "image": self.image,
            "parents": list(self.parents),
            "children": list(self.children),
            "spouses": list(self.spouses),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Person":
        """
        Build a person from serialized data.

        ``id`` and ``birth_year`` are required. Years may be given as numeric
        strings. A missing ``gender`` is read as male and a missing ``name``
        as the empty string.
        """
        death_year = data.get("death_year")
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            gender=data.get("gender") or Gender.MALE,
            birth_year=int(data["birth_year"]),
            death_year=int(death_year) if death_year is not None else None,
            occupation=data.get("occupation"),
            birthplace=data.get("birthplace"),
            notes=data.get("notes"),
            image=data.get("image"),
            parents=[str(i) for i in data.get("parents") or []],
            children=[str(i) for i in data.get("children") or []],
            spouses=[str(i) for i in data.get("spouses") or []],
        )


# ============================================================================
# Relationships
# ============================================================================


@dataclass(frozen=True)
class ParentRelationship:
    parent_id: str
    child_id: str

    type: ClassVar[RelationType] = RelationType.PARENT

    @property
    def from_id(self) -> str:
        return self.parent_id

    @property
    def to_id(self) -> str:
        return self.child_id

    @property
    def id(self) -> str:
        return f"{self.type.value}:{self.parent_id}:{self.child_id}"

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "from_id": self.from_id, "to_id": self.to_id, "type": self.type.value}


@dataclass(frozen=True)
class SpouseRelationship:
    person1_id: str
    person2_id: str

    type: ClassVar[RelationType] = RelationType.SPOUSE

    @property
    def from_id(self) -> str:
        return self.person1_id

    @property
    def to_id(self) -> str:
        return self.person2_id

    @property
    def id(self) -> str:
        return f"{self.type.value}:{self.person1_id}:{self.person2_id}"

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "from_id": self.from_id, "to_id": self.to_id, "type": self.type.value}


@dataclass(frozen=True)
class SiblingRelationship:
    person1_id: str
    person2_id: str

    type: ClassVar[RelationType] = RelationType.SIBLING

    @property
    def from_id(self) -> str:
        return self.person1_id

    @property
    def to_id(self) -> str:
        return self.person2_id

    @property
    def id(self) -> str:
        return f"{self.type.value}:{self.person1_id}:{self.person2_id}"

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "from_id": self.from_id, "to_id": self.to_id, "type": self.type.value}


Relationship = Union[ParentRelationship, SpouseRelationship, SiblingRelationship]


def relationship_from_dict(data: dict[str, Any]) -> Relationship:
    """Build the relationship variant named by ``data["type"]``."""
    rel_type = RelationType(data["type"])
    from_id = str(data["from_id"])
    to_id = str(data["to_id"])

    if rel_type == RelationType.PARENT:
        return ParentRelationship(parent_id=from_id, child_id=to_id)
    if rel_type == RelationType.CHILD:
        # child edges are stored the other way round
        return ParentRelationship(parent_id=to_id, child_id=from_id)
    if rel_type == RelationType.SPOUSE:
        return SpouseRelationship(person1_id=from_id, person2_id=to_id)
    return SiblingRelationship(person1_id=from_id, person2_id=to_id)


# ============================================================================
# Derived data
# ============================================================================


@dataclass(frozen=True)
class ConsistencyWarning:
    """A non-blocking finding for the caller to display."""

    kind: WarningKind
    person_id: str
    message: str
    related_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "person_id": self.person_id,
            "related_id": self.related_id,
            "message": self.message,
        }


@dataclass
class TreeNode:
    id: str
    name: str
    gender: Gender
    birth_year: int
    death_year: int | None = None
    x: float = 0.0
    y: float = 0.0
    level: int = 0  # row inside the component
    generation: int = 0  # relative to the layout root, negative above it
    component: int = 0
    width: float = 0.0
    height: float = 0.0
    is_spouse: bool = False
    is_placeholder: bool = False
    placeholder_type: RelationType | None = None
    target_id: str | None = None
    parents: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)
    spouses: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "gender": self.gender.value,
            "birth_year": self.birth_year,
            "death_year": self.death_year,
            "x": self.x,
            "y": self.y,
            "level": self.level,
            "generation": self.generation,
            "component": self.component,
            "width": self.width,
            "height": self.height,
            "is_spouse": self.is_spouse,
            "is_placeholder": self.is_placeholder,
            "placeholder_type": self.placeholder_type.value if self.placeholder_type else None,
            "target_id": self.target_id,
            "parents": list(self.parents),
            "children": list(self.children),
            "spouses": list(self.spouses),
        }


@dataclass
class LayoutResult:
    nodes: list[TreeNode] = field(default_factory=list)
    component_count: int = 0
    fallback: LayoutFallback | None = None

    def node(self, person_id: str) -> TreeNode | None:
        for n in self.nodes:
            if n.id == person_id:
                return n
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "component_count": self.component_count,
            "fallback": self.fallback.value if self.fallback else None,
        }
