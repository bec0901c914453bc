from typing import List, Tuple

from qaforge.models.chunk import HeadingRecord, TocNode


def build_toc(headings: List[HeadingRecord]) -> List[TocNode]:
    """
    Folds headings into a forest. A node becomes a child of the nearest
    preceding node with a strictly smaller level, otherwise a new root.
    """
    roots: List[TocNode] = []
    stack: List[Tuple[TocNode, int]] = []

    for heading in headings:
        node = TocNode(title=heading.title, level=heading.level)

        while stack and stack[-1][1] >= heading.level:
            stack.pop()

        if stack:
            stack[-1][0].children.append(node)
        else:
            roots.append(node)
        stack.append((node, heading.level))

    return roots


def flatten_toc(forest: List[TocNode]) -> List[Tuple[int, str]]:
    """Pre-order (level, title) pairs; equals the heading order the forest was built from."""
    flat = []
    pending = list(reversed(forest))
    while pending:
        node = pending.pop()
        flat.append((node.level, node.title))
        pending.extend(reversed(node.children))
    return flat


def toc_to_markdown(forest: List[TocNode], nested: bool = True, indent: str = "  ") -> str:
    """
    Renders the forest as text.
    nested=True:  "- title" bullets, one indent unit per tree depth.
    nested=False: "#"-marker lines using each node's own heading level.
    """
    lines = []

    def walk(nodes: List[TocNode], depth: int) -> None:
        for node in nodes:
            if nested:
                lines.append(f"{indent * depth}- {node.title}")
            else:
                lines.append(f"{'#' * node.level} {node.title}")
            walk(node.children, depth + 1)

    walk(forest, 0)
    return "\n".join(lines)
