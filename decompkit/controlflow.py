"""Recovering structured control flow (if, if-else, while) from basic blocks."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from .ir import BasicBlock, ControlNode, ControlNodeScope, ControlNodeType, StopReason
from .visitor import Visitor

_VISIT_CAPACITY = 32
_NO_ADDRESS = 0xFFFF_FFFF_FFFF_FFFF


def resolve_block(blocks: Sequence[BasicBlock], address: int) -> BasicBlock | None:
    """The block whose native range holds the address, or None."""
    for block in blocks:
        if block.contains(address):
            return block
    return None


def _follow(visitor: Visitor, block: BasicBlock | None) -> None:
    while block is not None and visitor.add(block.start_va):
        block = block.go_to


def find_merge_point(
    blocks: Sequence[BasicBlock], first: BasicBlock, second: BasicBlock
) -> BasicBlock | None:
    """The earliest block reached from both branches at or after both of them."""
    lowest = max(first.start_va, second.start_va)
    best = _NO_ADDRESS
    for start in (first, second):
        visitor = Visitor(_VISIT_CAPACITY)
        _follow(visitor, start.go_to)
        for address in visitor.compressed():
            if address >= lowest:
                best = min(best, address)
    return resolve_block(blocks, best)


@dataclass
class _Traversal:
    blocks: Sequence[BasicBlock]
    visitor: Visitor = field(default_factory=lambda: Visitor(_VISIT_CAPACITY))
    nodes: list[ControlNode] = field(default_factory=list)

    def walk(
        self,
        block: BasicBlock | None,
        parent: ControlNode | None,
        no_go: BasicBlock | None,
        level: int,
        scope: ControlNodeScope,
    ) -> StopReason:
        # Straight-line successions are followed iteratively; branches recurse.
        while True:
            if block is None:
                return StopReason.NULL_BB
            if block is no_go:
                return StopReason.MERGE_POINT
            if not self.visitor.add(block.start_va):
                return StopReason.ALREADY_VISITED

            position = len(self.nodes)
            node = ControlNode(bb=block, level=level, scope=scope, parent=parent)
            self.nodes.append(node)

            if isinstance(block.go_to, BasicBlock) and isinstance(block.go_to_true, BasicBlock):
                merge = find_merge_point(self.blocks, block.go_to, block.go_to_true)
                taken = self.walk(block.go_to_true, node, merge, level + 1, ControlNodeScope.TRUE)
                passed = self.walk(block.go_to, node, merge, level + 1, ControlNodeScope.FALSE)
                self._classify(node, position, merge, taken, passed)
                block = merge
            else:
                node.type = ControlNodeType.BODY
                block = block.go_to if isinstance(block.go_to, BasicBlock) else None
            scope = ControlNodeScope.NONE

    def _classify(
        self,
        node: ControlNode,
        position: int,
        merge: BasicBlock | None,
        taken: StopReason,
        passed: StopReason,
    ) -> None:
        following = self.nodes[position:]
        if StopReason.ALREADY_VISITED in (taken, passed):
            node.type = ControlNodeType.WHILE
            # A loop's exit path is not part of its body: lift it out one level.
            for offset, candidate in enumerate(following):
                if candidate.level == node.level + 1 and candidate.scope == ControlNodeScope.FALSE:
                    candidate.level -= 1
                    candidate.scope = ControlNodeScope.NONE
                    for later in following[offset:]:
                        later.level -= 1
                    break
            return

        bodies = 0
        for candidate in following:
            if candidate.bb is merge:
                break
            if candidate.level == node.level + 1:
                bodies += 1
        node.type = ControlNodeType.IF if bodies == 1 else ControlNodeType.IF_ELSE


def traverse(blocks: Sequence[BasicBlock]) -> list[ControlNode]:
    """Build the control tree for blocks whose branch targets are already resolved."""
    if not blocks:
        return []

    walker = _Traversal(blocks)
    walker.walk(blocks[0], None, None, 0, ControlNodeScope.NONE)
    nodes = walker.nodes

    for current, following in zip(nodes, nodes[1:]):
        current.next = following

    max_level = max((node.level for node in nodes), default=0)
    for level in range(max_level + 1):
        previous: ControlNode | None = None
        for node in nodes:
            if node.level != level:
                continue
            if previous is not None:
                previous.next_in_level = node
            previous = node

    return nodes