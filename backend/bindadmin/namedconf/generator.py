"""
named.conf generator
"""

from typing import List, Optional

from ..core.exceptions import NilRoot
from .elements import ConfigElement, ElementKind


class NamedConfGenerator:
    """Render a ConfigElement tree back to canonical named.conf text"""

    def __init__(self, indent_size: int = 4):
        self.indent_size = indent_size

    def generate(self, root: Optional[ConfigElement]) -> str:
        if root is None:
            raise NilRoot("Cannot generate configuration without a root element")

        out: List[str] = []
        self._generate_element(out, root, 0)
        return "".join(out)

    def _generate_element(self, out: List[str], element: ConfigElement, indent: int) -> None:
        pad = " " * indent

        for comment in element.leading_comments:
            out.append(f"{pad}# {comment}\n")

        kind = element.kind
        if kind == ElementKind.ROOT:
            for child in element.children:
                self._generate_element(out, child, indent)

        elif kind == ElementKind.BLOCK:
            if element.value:
                out.append(f'{pad}{element.name} "{element.value}" {{')
            else:
                out.append(f"{pad}{element.name} {{")
            out.append(self._trailing(element))
            for child in element.children:
                self._generate_element(out, child, indent + self.indent_size)
            out.append(f"{pad}}}\n")

        elif kind == ElementKind.SIMPLE:
            if element.value:
                out.append(f'{pad}{element.name} "{element.value}";')
            else:
                out.append(f"{pad}{element.name};")
            out.append(self._trailing(element))

        elif kind == ElementKind.INCLUDE:
            # Included files keep their own layout; only the directive is written
            out.append(f'{pad}include "{element.value}";')
            out.append(self._trailing(element))

        else:
            out.append(f"{pad}// unknown element kind: {kind}\n")

    @staticmethod
    def _trailing(element: ConfigElement) -> str:
        if element.trailing_comment:
            return f" # {element.trailing_comment}\n"
        return "\n"
