"""
Runtime Binding Rule Module.

Prepends the binding every injected call goes through. Scripts get

    const $jankyp = require("jankyp/ledger");

and modules get

    import * as $jankyp from "jankyp/ledger";

Registered last so the binding precedes every other preamble statement.
"""

from typing import Optional

from jankyp.core.hooks import RuleContext, RuleModule
from jankyp.core.syntax import Node, call, const_declaration, identifier, literal, prepend_statements

RULES = RuleModule("runtime", "Binds the behavior ledger.")


def _import_namespace(name: str, source: str) -> Node:
  return {
    "type": "ImportDeclaration",
    "specifiers": [{"type": "ImportNamespaceSpecifier", "local": identifier(name)}],
    "source": literal(source),
  }


@RULES.rule("Program")
def bind_ledger(node: Node, ctx: RuleContext) -> Optional[Node]:
  if ctx.config.source_type == "module":
    binding = _import_namespace(ctx.binding, ctx.config.ledger_module)
  else:
    require = call(identifier("require"), [literal(ctx.config.ledger_module)])
    binding = const_declaration(ctx.binding, require)
  return {**node, "body": prepend_statements(node["body"], [binding])}
