"""
Structured form of a named.conf file
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, Tuple


class ElementKind(str, Enum):
    """Kinds of configuration elements"""
    ROOT = "root"
    BLOCK = "block"
    SIMPLE = "simple"
    INCLUDE = "include"


@dataclass(frozen=True)
class ConfigElement:
    """
    One node of a parsed named.conf.

    ``kind`` drives rendering. ``value`` is the block label, the scalar payload
    of a simple statement, or the resolved path of an include. Child order is
    source order. Instances are immutable; build a new tree to change one.
    """

    kind: str
    name: str = ""
    value: str = ""
    leading_comments: Tuple[str, ...] = ()
    trailing_comment: str = ""
    children: Tuple["ConfigElement", ...] = field(default=())

    def __post_init__(self):
        # Accept lists from callers but store tuples
        object.__setattr__(self, "leading_comments", tuple(self.leading_comments))
        object.__setattr__(self, "children", tuple(self.children))

        if self.kind == ElementKind.ROOT and (self.name or self.value):
            raise ValueError("root element must have empty name and value")
        if self.kind == ElementKind.SIMPLE and self.children:
            raise ValueError(f"simple element '{self.name}' cannot have children")
        if self.kind != ElementKind.ROOT:
            for child in self.children:
                if child.kind == ElementKind.ROOT:
                    raise ValueError("root element can only appear at the top of a tree")

    @classmethod
    def root(cls, children: Iterable["ConfigElement"] = ()) -> "ConfigElement":
        return cls(kind=ElementKind.ROOT.value, children=tuple(children))

    @classmethod
    def block(cls, name: str, value: str = "", children: Iterable["ConfigElement"] = (),
              leading_comments: Iterable[str] = (), trailing_comment: str = "") -> "ConfigElement":
        return cls(ElementKind.BLOCK.value, name, value, tuple(leading_comments), trailing_comment, tuple(children))

    @classmethod
    def simple(cls, name: str, value: str = "", leading_comments: Iterable[str] = (),
               trailing_comment: str = "") -> "ConfigElement":
        return cls(ElementKind.SIMPLE.value, name, value, tuple(leading_comments), trailing_comment)

    @classmethod
    def include(cls, path: str, children: Iterable["ConfigElement"] = (),
                leading_comments: Iterable[str] = (), trailing_comment: str = "") -> "ConfigElement":
        return cls(ElementKind.INCLUDE.value, "include", path, tuple(leading_comments), trailing_comment, tuple(children))

    def walk(self) -> Iterator["ConfigElement"]:
        """Yield this element and every descendant, depth first in source order"""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "kind": self.kind,
            "name": self.name,
            "value": self.value,
            "leading_comments": list(self.leading_comments),
            "trailing_comment": self.trailing_comment,
            "children": [child.to_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigElement":
        """Create from dictionary"""
        kind = data.get("kind") or ""
        return cls(
            kind=kind.value if isinstance(kind, ElementKind) else str(kind),
            name=data.get("name") or "",
            value=data.get("value") or "",
            leading_comments=tuple(data.get("leading_comments") or ()),
            trailing_comment=data.get("trailing_comment") or "",
            children=tuple(cls.from_dict(child) for child in data.get("children") or ()),
        )
