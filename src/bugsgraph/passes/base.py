"""
Base Pass System

Rust Pattern: rustc_mir::transform::MirPass
"""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Set, Type

from ..shared.nodes import Block
from ..symbolic.state import CompilerState
from ..utils.config import DEFAULT_FILE_ENCODING

logger = logging.getLogger(__name__)


class BasePass(ABC):
    """
    Base class for all passes.

    Rust Pattern: rustc_mir::transform::MirPass

    - Explicit dependencies via `requires`
    - Results that are not a tree are stored on the CompilerState
    - Trees are immutable: a pass returns a new Block
    """
    requires: List[Type['BasePass']] = []

    @abstractmethod
    def run(self, program: Block, state: CompilerState) -> Block:
        raise NotImplementedError


def _dump_file_name(pass_class: Type[BasePass]) -> str:
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", pass_class.__name__).lower()
    return f"after_{snake}.sexpr"


class PassManager:
    """
    Pass manager with dependency resolution.

    Rust Pattern: rustc driver with pass scheduling

    - Automatic dependency resolution (topological sort)
    - Passes run in dependency order
    - Single CompilerState shared across all passes
    """

    def __init__(self):
        self.passes: List[Type[BasePass]] = []
        self._dependency_graph: Dict[Type[BasePass], Set[Type[BasePass]]] = {}

    def register_pass(self, pass_class: Type[BasePass]) -> None:
        self.passes.append(pass_class)
        self._dependency_graph[pass_class] = set(pass_class.requires)

    def run_all(
        self,
        program: Block,
        state: CompilerState,
        dump_dir: Optional[Path] = None,
    ) -> Block:
        """
        Run all passes in dependency order.

        Args:
            program: Input tree
            state: Compiler state of this compilation
            dump_dir: If given, write the tree's S-expression after each pass there
        """
        for pass_class in self._topological_sort():
            logger.debug(f"Running {pass_class.__name__}")
            program = pass_class().run(program, state)
            if dump_dir is not None:
                self._dump(program, pass_class, dump_dir)
        return program

    @staticmethod
    def _dump(program: Block, pass_class: Type[BasePass], dump_dir: Path) -> None:
        from ..compiler.serialization import serialize_tree
        try:
            dump_dir.mkdir(parents=True, exist_ok=True)
            path = dump_dir / _dump_file_name(pass_class)
            path.write_text(serialize_tree(program), encoding=DEFAULT_FILE_ENCODING)
        except OSError as e:
            logger.warning(f"Could not dump tree after {pass_class.__name__}: {e}")

    def _topological_sort(self) -> List[Type[BasePass]]:
        """Topological sort of passes by dependencies"""
        in_degree = {p: len(self._dependency_graph[p] & set(self.passes)) for p in self.passes}
        queue = [p for p, degree in in_degree.items() if degree == 0]
        result = []

        while queue:
            pass_class = queue.pop(0)
            result.append(pass_class)

            for other_pass in self.passes:
                if pass_class in self._dependency_graph[other_pass]:
                    in_degree[other_pass] -= 1
                    if in_degree[other_pass] == 0:
                        queue.append(other_pass)

        if len(result) != len(self.passes):
            raise RuntimeError("Circular dependency detected in passes")

        return result

