"""Family graph store, consistency checks, tree layout and undo history."""

from kintree.errors import KinTreeError, PersonNotFoundError, ValidationError, ValidationReason
from kintree.history import HistoryManager, HistorySnapshot, diff_stores
from kintree.layout import LayoutOptions, compute_layout
from kintree.models import (
    ConsistencyWarning,
    Gender,
    LayoutFallback,
    LayoutResult,
    Person,
    RelationType,
    TreeNode,
    ViewMode,
    WarningKind,
)
from kintree.session import EditResult, FamilyTreeSession
from kintree.store import RelationshipStore

__version__ = "0.1.0"

__all__ = [
    "ConsistencyWarning",
    "EditResult",
    "FamilyTreeSession",
    "Gender",
    "HistoryManager",
    "HistorySnapshot",
    "KinTreeError",
    "LayoutFallback",
    "LayoutOptions",
    "LayoutResult",
    "Person",
    "PersonNotFoundError",
    "RelationType",
    "RelationshipStore",
    "TreeNode",
    "ValidationError",
    "ValidationReason",
    "ViewMode",
    "WarningKind",
    "compute_layout",
    "diff_stores",
]
