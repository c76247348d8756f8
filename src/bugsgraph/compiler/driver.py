"""
Compiler Driver

Rust Pattern: rustc_driver::driver
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..passes.base import PassManager
from ..passes.link_functions import LinkFunctionPass
from ..passes.special_functions import SpecialFunctionPass
from ..passes.structural import StructuralResolutionPass
from ..passes.validation import SyntaxValidationPass
from ..shared.errors import BugsError
from ..shared.nodes import Block
from ..symbolic.state import CompilerState
from ..utils.config import DUMP_TREE_DIR, DUMP_TREE_ENV_VAR
from .emitter import EmittedNode, GraphEmissionPass

logger = logging.getLogger(__name__)


class CompilationResult:
    """Compilation result"""

    def __init__(
        self,
        nodes: Optional[Dict[str, EmittedNode]] = None,
        state: Optional[CompilerState] = None,
        program: Optional[Block] = None,
        success: bool = False,
        error: Optional[BugsError] = None,
    ):
        self.nodes = nodes
        self.state = state
        self.program = program
        self.success = success
        self.error = error

    def has_errors(self) -> bool:
        if self.state is not None:
            return self.state.reporter.has_errors()
        return not self.success

    def get_errors(self) -> list:
        if self.state is not None and self.state.reporter.has_errors():
            return [self.state.reporter.format_all_errors(color=False)]
        return []


class CompilerDriver:
    """
    Compiler driver (Rust naming: rustc_driver::driver).

    Rust Pattern: rustc_driver::driver

    - Seeds the CompilerState from data
    - Runs the passes in dependency order
    - Turns a BugsError into a failed CompilationResult
    """

    def __init__(self):
        self.pass_manager = PassManager()
        self._register_passes()

    def _register_passes(self) -> None:
        """
        Pass order:
        1. SyntaxValidationPass (shape checks, `x[]` -> `x[:]`)
        2. LinkFunctionPass (`log(x) = e` -> `x = exp(e)`)
        3. SpecialFunctionPass (`cumulative`/`density`/`deviance`)
        4. StructuralResolutionPass (unroll, conditionals, rules)
        5. GraphEmissionPass (node mapping)
        """
        self.pass_manager.register_pass(SyntaxValidationPass)
        self.pass_manager.register_pass(LinkFunctionPass)
        self.pass_manager.register_pass(SpecialFunctionPass)
        self.pass_manager.register_pass(StructuralResolutionPass)
        self.pass_manager.register_pass(GraphEmissionPass)

    def compile(
        self,
        program: Block,
        data: Optional[Mapping[str, Any]] = None,
        source_files: Optional[Dict[str, str]] = None,
        dump_dir: Optional[Path] = None,
    ) -> CompilationResult:
        """
        Compile a model tree against a data binding.

        Trees are immutable, so the caller's ``program`` is never modified.
        ``dump_dir`` defaults to ``tree_dumps/`` when ``BUGSGRAPH_DUMP_TREE`` is set.
        """
        state = CompilerState(source_files)
        if dump_dir is None and os.environ.get(DUMP_TREE_ENV_VAR):
            dump_dir = Path(DUMP_TREE_DIR)

        try:
            state.seed_data(data or {})
            program = self.pass_manager.run_all(program, state, dump_dir=dump_dir)
        except BugsError as e:
            logger.debug(f"Compilation failed: {e.message}")
            state.reporter.report_exception(e)
            return CompilationResult(state=state, success=False, error=e)

        nodes = state.get_analysis(GraphEmissionPass)
        return CompilationResult(nodes=nodes, state=state, program=program, success=True)


def compile_model(program: Block, data: Optional[Mapping[str, Any]] = None) -> Dict[str, EmittedNode]:
    """Compile ``program`` with ``data`` and return the node mapping; raises on any error."""
    result = CompilerDriver().compile(program, data)
    if not result.success:
        raise result.error
    return result.nodes
