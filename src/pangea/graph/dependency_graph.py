"""Build a directed dependency graph from a synthesized Terraform document."""

import re
import networkx as nx
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple
from ..utils.errors import DependencyCycleError, DependencyGraphError, MissingReferenceError
from ..utils.logging import get_logger

logger = get_logger("graph.dependency_graph")

INTERPOLATION_PATTERN = re.compile(r"\$\{([^}]*)\}")
TRAVERSAL_PATTERN = re.compile(r"(?<![\w.\-])([a-zA-Z_][\w-]*)\.([a-zA-Z_][\w-]*)(?:\.([a-zA-Z_][\w-]*))?")
STRING_LITERAL_PATTERN = re.compile(r'"(?:[^"\\]|\\.)*"')

# Roots that never name a resource
IGNORED_ROOTS = {"var", "local", "module", "path", "each", "count", "self", "terraform"}


def extract_references(value: str) -> Set[str]:
    """
    Find resource and data source addresses referenced by a string.

    Only text inside ``${...}`` is inspected, without its quoted string
    literals. Returns addresses such as ``aws_vpc.main`` and
    ``data.aws_ami.ubuntu``.
    """
    found: Set[str] = set()
    for expression in INTERPOLATION_PATTERN.findall(value):
        expression = STRING_LITERAL_PATTERN.sub("", expression)
        for root, second, third in TRAVERSAL_PATTERN.findall(expression):
            if root in IGNORED_ROOTS:
                continue
            if root == "data":
                if third:
                    found.add(f"data.{second}.{third}")
                continue
            found.add(f"{root}.{second}")
    return found


def depends_on_address(entry: str) -> Optional[str]:
    """
    Address of the resource or data source a ``depends_on`` entry names.

    Returns None for modules, variables and other non-resource roots.
    """
    parts = INTERPOLATION_PATTERN.sub(r"\1", entry).strip().split(".")
    if parts[0] in IGNORED_ROOTS:
        return None
    if parts[0] == "data":
        return ".".join(parts[:3]) if len(parts) >= 3 else None
    return ".".join(parts[:2]) if len(parts) >= 2 else None


def _strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _strings(item)


def _blocks(document: Dict[str, Any]) -> Iterator[Tuple[str, Dict[str, Any]]]:
    for key, prefix in (("resource", ""), ("data", "data.")):
        for block_type, by_name in (document.get(key) or {}).items():
            for name, body in by_name.items():
                yield f"{prefix}{block_type}.{name}", body


class DependencyGraph:
    """Directed dependency graph: nodes=resources and data sources, edges=references."""

    def __init__(self):
        self.graph = nx.DiGraph()
        self._references: Dict[str, Set[str]] = {}

    def add_block(self, address: str, body: Dict[str, Any]) -> None:
        """Add a resource or data source and record what it references."""
        self.graph.add_node(address)
        references: Set[str] = set()
        for text in _strings({key: value for key, value in body.items() if key != "depends_on"}):
            references.update(extract_references(text))
        for entry in body.get("depends_on") or []:
            dependency = depends_on_address(entry)
            if dependency is not None:
                references.add(dependency)
        references.discard(address)
        self._references[address] = references

    def build_from_document(self, document: Dict[str, Any]) -> "DependencyGraph":
        """
        Build the complete graph from a Terraform JSON document.

        Edges point from a block to the blocks it depends on. References
        to addresses that are not defined are kept aside for
        ``find_missing_references``.

        Raises:
            DependencyGraphError: If the document structure cannot be read
        """
        try:
            for address, body in _blocks(document):
                self.add_block(address, body)
        except (AttributeError, TypeError) as e:
            raise DependencyGraphError(f"Failed to build dependency graph: {e}") from e

        for address, references in self._references.items():
            for dependency in references:
                if dependency in self.graph:
                    self.graph.add_edge(address, dependency)
                    logger.debug(f"Added dependency edge: {address} -> {dependency}")

        logger.info(f"Built dependency graph with {self.graph.number_of_nodes()} nodes "
                    f"and {self.graph.number_of_edges()} edges")
        return self

    def dependencies(self, address: str, transitive: bool = False) -> Set[str]:
        """Blocks that ``address`` depends on (upstream)."""
        if address not in self.graph:
            return set()
        if transitive:
            return set(nx.descendants(self.graph, address))
        return set(self.graph.successors(address))

    def dependents(self, address: str) -> Set[str]:
        """All blocks that depend on ``address``, directly or not (downstream)."""
        if address not in self.graph:
            return set()
        return set(nx.ancestors(self.graph, address))

    def find_missing_references(self) -> Dict[str, List[str]]:
        """Map each block to the referenced addresses that are not defined."""
        missing: Dict[str, List[str]] = {}
        for address, references in self._references.items():
            unknown = sorted(reference for reference in references if reference not in self.graph)
            if unknown:
                missing[address] = unknown
        return missing

    def find_cycles(self) -> List[List[str]]:
        return [sorted(cycle) for cycle in nx.simple_cycles(self.graph)]

    def topological_order(self) -> List[str]:
        """
        Blocks ordered so that every block comes after its dependencies.

        Raises:
            DependencyCycleError: If the graph has a cycle
        """
        try:
            return list(reversed(list(nx.topological_sort(self.graph))))
        except nx.NetworkXUnfeasible as e:
            raise DependencyCycleError(f"Dependency cycle detected: {self.find_cycles()}") from e

    def has_node(self, address: str) -> bool:
        return address in self.graph


def validate_references(document: Dict[str, Any], graph: Optional[DependencyGraph] = None) -> DependencyGraph:
    """
    Check that every reference resolves and that there are no cycles.

    Raises:
        MissingReferenceError: If a block references an undefined resource
        DependencyCycleError: If blocks reference each other in a cycle
    """
    graph = graph or DependencyGraph().build_from_document(document)
    missing = graph.find_missing_references()
    if missing:
        details = "; ".join(f"{address} -> {', '.join(refs)}" for address, refs in sorted(missing.items()))
        raise MissingReferenceError(f"Undefined references: {details}")
    cycles = graph.find_cycles()
    if cycles:
        raise DependencyCycleError(
            f"Dependency cycle detected: {'; '.join(' -> '.join(cycle) for cycle in cycles)}"
        )
    return graph
