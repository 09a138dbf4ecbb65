"""
Single-walk Traversal.

Applies the merged rule table to a tree in one post-order walk: children are
rewritten first, then the rules for the node's kind run in module
registration order. A handler that changes the node's kind hands it on to
the remaining modules' rules for the new kind; replacement subtrees are not
walked again.
"""

import logging
from typing import Dict, List, Tuple

from jankyp.core.errors import UnsupportedConstruct
from jankyp.core.hooks import RuleContext, RuleEntry
from jankyp.core.syntax import Node, ensure_recursion_limit, iter_child_slots

logger = logging.getLogger(__name__)

_SPAN_KEYS = ("loc", "range")


class Traversal:
  """
  Walks one tree, applying a merged rule table.

  Attributes:
      table (Dict[str, List[RuleEntry]]): Output of `merge_rules`.
      ctx (RuleContext): Shared context handed to every handler.
  """

  def __init__(self, table: Dict[str, List[RuleEntry]], ctx: RuleContext):
    self.table = table
    self.ctx = ctx

  def run(self, root: Node) -> Node:
    """
    Rewrites `root` in place and returns the (possibly replaced) root.

    Raises:
        StructuralError: Propagated from any rule that finds a node without
            a source span.
    """
    ensure_recursion_limit()
    return self._visit(root)

  def _visit(self, node: Node) -> Node:
    for key, index, child in iter_child_slots(node):
      self.ctx.enter(node, key, index)
      try:
        updated = self._visit(child)
      finally:
        self.ctx.leave()
      if updated is not child:
        if index is None:
          node[key] = updated
        else:
          node[key][index] = updated
    return self._apply(node)

  def _apply(self, node: Node) -> Node:
    cursor: Tuple[int, float] = (-1, -1)
    while True:
      entry = next((e for e in self.table.get(node["type"], ()) if e.order > cursor), None)
      if entry is None:
        return node
      cursor = entry.order

      try:
        result = entry.handler(node, self.ctx)
      except UnsupportedConstruct as e:
        logger.debug("Rule '%s' skipped %s: %s", entry.module, node["type"], e)
        continue

      if result is None or result is node:
        continue

      for key in _SPAN_KEYS:
        if key not in result and key in node:
          result[key] = node[key]
      self.ctx.count(entry.module)

      if result["type"] != node["type"]:
        # Remaining handlers of this module were declared for the old kind.
        cursor = (entry.order[0], float("inf"))
      node = result


def walk(root: Node, table: Dict[str, List[RuleEntry]], ctx: RuleContext) -> Node:
  """Convenience wrapper around `Traversal(table, ctx).run(root)`."""
  return Traversal(table, ctx).run(root)
