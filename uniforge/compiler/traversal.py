"""
Graph traversal engine.

Walks a logic module depth-first from a start node and turns it into
structured control flow:

    Entry / Stop       no statement (Stop ends the branch)
    Action             lowered via the action table, then follow the flow port
    Condition          if (...) { true branch } else { false branch }

Termination: every walk carries the path of (module id, node id) pairs it
has visited. Reaching a node already on the path, or a path longer than
max_traversal_depth, ends the branch with a diagnostic comment. The path
is per branch, so two branches converging on a shared tail both emit it.
RunModule inlining shares the path, so a module invoking itself (directly
or through others) is caught the same way.

Because shared tails are re-emitted, a chain of if/else diamonds doubles
the output at every merge. Each traverser therefore also spends from a
single node budget (max_emitted_nodes) across every walk it makes for the
entity, inlined modules included. Once spent, every remaining branch ends
with a budget comment.
"""

from typing import Optional, Tuple

from uniforge.compiler.actions import lower_action
from uniforge.compiler.conditions import lower_condition_node
from uniforge.compiler.context import LoweringContext
from uniforge.compiler.writer import CodeWriter
from uniforge.ir.models import Module, Node, NodeKind
from uniforge.logging import get_logger

log = get_logger('traversal')

FLOW_PORTS = ('out', 'next', 'flow', '')
TRUE_PORTS = ('true', 'then')
FALSE_PORTS = ('false', 'else')

Path = Tuple[Tuple[str, str], ...]


class GraphTraverser:
    """Lowers module graphs of one entity."""

    def __init__(self, ctx: LoweringContext):
        self.ctx = ctx
        self.max_depth = ctx.config.max_traversal_depth
        self.budget = ctx.config.max_emitted_nodes

    def traverse(self, module: Module, start: Optional[Node], writer: CodeWriter, path: Path = ()) -> None:
        """
        Append the statements reachable from start.

        Args:
            module: Module owning start
            start: First node to lower (None emits nothing)
            writer: Destination buffer
            path: Nodes already on the current path (for inlined modules)
        """
        node = start
        while node is not None:
            key = (module.id, node.id)
            if key in path:
                log.fallback('cycle', self.ctx.entity.id, "cycle at node %s of module %s, branch ends",
                             node.id, module.id)
                writer.comment(f"Cycle: node {node.id} of module {module.name or module.id} already visited")
                return
            if len(path) >= self.max_depth:
                log.fallback('depth_limit', self.ctx.entity.id, "traversal depth %d reached in module %s, branch ends",
                             self.max_depth, module.id)
                writer.comment(f"Traversal depth limit ({self.max_depth}) reached")
                return
            if self.budget <= 0:
                log.fallback('budget_exhausted', self.ctx.entity.id,
                             "traversal budget of %d nodes spent in module %s, branch ends",
                             self.ctx.config.max_emitted_nodes, module.id)
                writer.comment("Traversal budget exhausted")
                return
            self.budget -= 1
            path = path + (key,)

            if node.kind == NodeKind.STOP.value:
                return
            if node.kind == NodeKind.CONDITION.value:
                self._branch(module, node, writer, path)
                return
            if node.kind == NodeKind.ACTION.value:
                self._action(node, writer, path)
            elif node.kind != NodeKind.ENTRY.value:
                log.debug("Node %s has unknown kind %r, passing through", node.id, node.kind)

            node = self.successor(module, node, FLOW_PORTS)

    def run_module(self, module_id: str, writer: CodeWriter, path: Path = ()) -> None:
        """Inline a module's graph at the call site."""
        module = self.ctx.entity.module(module_id)
        if module is None:
            log.fallback('missing_module', self.ctx.entity.id, "RunModule target %s not found", module_id)
            writer.comment(f"Warning: Module {module_id} not found")
            return
        if any(mod == module.id for mod, _ in path):
            log.fallback('recursive_module', self.ctx.entity.id, "module %s invokes itself, not inlined again",
                         module_id)
            writer.comment(f"Recursive RunModule: {module_id} is already running here")
            return
        entry = module.entry_node()
        if entry is None:
            log.fallback('missing_entry', self.ctx.entity.id, "module %s has no entry node", module_id)
            writer.comment(f"Warning: Module {module_id} has no entry node")
            return
        self.traverse(module, entry, writer, path)

    @staticmethod
    def successor(module: Module, node: Node, ports) -> Optional[Node]:
        """Target of the first edge leaving node on one of ports."""
        for edge in module.outgoing(node.id):
            if (edge.from_port or '').strip().lower() in ports:
                return module.node(edge.to_node_id)
        return None

    def _action(self, node: Node, writer: CodeWriter, path: Path) -> None:
        previous = self.ctx.run_module
        self.ctx.run_module = lambda module_id, w: self.run_module(module_id, w, path)
        try:
            lower_action(node.action, node.params, writer, self.ctx)
        finally:
            self.ctx.run_module = previous

    def _branch(self, module: Module, node: Node, writer: CodeWriter, path: Path) -> None:
        expression = lower_condition_node(node, self.ctx)
        with writer.block(f"if ({expression})"):
            self.traverse(module, self.successor(module, node, TRUE_PORTS), writer, path)
        with writer.block("else"):
            self.traverse(module, self.successor(module, node, FALSE_PORTS), writer, path)
