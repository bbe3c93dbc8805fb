"""
Dependency Graph Builder

Infers which stages feed which from the table names their payloads
reference. Used for visualization and ordering checks only; the
materializer resolves inputs on its own at execution time.

Stages are scanned in order while a running map of known table name ->
producing stage id is filled in, so a stage can only depend on an
earlier one and the graph is acyclic by construction.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from stageflow.models.stage import Stage, StageType
from stageflow.pipeline.naming import joined_table_name, table_name_for

logger = logging.getLogger(__name__)


@dataclass
class StageNode:
    id: str
    stage: Stage
    inputs: List[str] = field(default_factory=list)
    level: int = 0


@dataclass
class StageEdge:
    source: str
    target: str
    implicit: bool = False  # previous-stage fallback, not referenced by name


def referenced_tables(stage: Stage) -> List[str]:
    """Table names a stage's payload references, in payload order"""
    data = stage.data or {}
    if stage.type == StageType.JOIN:
        return [t for t in (data.get("leftTable"), data.get("rightTable")) if isinstance(t, str) and t]
    if stage.type == StageType.UNION:
        tables = data.get("tables") or []
        return [t for t in tables if isinstance(t, str) and t]
    if stage.type in (StageType.FILTER, StageType.GROUP, StageType.SELECT, StageType.SORT):
        table = stage.referenced_table()
        return [table] if table else []
    return []


def produced_tables(stage: Stage, index: int) -> List[str]:
    """Table names that become known once this stage has been scanned"""
    data = stage.data or {}
    if stage.type == StageType.LOAD:
        name = data.get("tableName")
        return [name] if isinstance(name, str) and name else []

    names = [table_name_for(index, stage.type)]
    if stage.type == StageType.JOIN:
        left, right = data.get("leftTable"), data.get("rightTable")
        if left and right:
            names.append(joined_table_name(left, right))
    return names


def build_graph(stages: Sequence[Stage]) -> Dict[str, StageNode]:
    """
    Build the stage dependency graph

    Args:
        stages: Ordered stage list

    Returns:
        Ordered mapping of stage id -> StageNode(inputs, level)
    """
    nodes: Dict[str, StageNode] = {}
    known: Dict[str, str] = {}

    for index, stage in enumerate(stages):
        node = StageNode(id=stage.id, stage=stage)
        nodes[stage.id] = node

        for table_name in referenced_tables(stage):
            producer = known.get(table_name)
            if producer is not None and producer not in node.inputs:
                node.inputs.append(producer)

        if node.inputs:
            node.level = 1 + max(nodes[i].level for i in node.inputs)

        # Registered after inputs are resolved: no self references.
        # A later producer of the same name shadows the earlier one.
        for table_name in produced_tables(stage, index):
            known[table_name] = stage.id

    return nodes


def build_edges(stages: Sequence[Stage], graph: Dict[str, StageNode]) -> List[StageEdge]:
    """
    Edges for display

    Explicit edges come from resolved inputs. A non-LOAD stage with no
    resolvable inputs is linked to the previous stage, unless that one
    is a LOAD.
    """
    edges: List[StageEdge] = []
    for index, stage in enumerate(stages):
        if stage.type == StageType.LOAD:
            continue
        node = graph.get(stage.id)
        if node is None:
            continue
        if node.inputs:
            edges.extend(StageEdge(source=i, target=stage.id) for i in node.inputs)
        elif index > 0 and stages[index - 1].type != StageType.LOAD:
            edges.append(StageEdge(source=stages[index - 1].id, target=stage.id, implicit=True))
    return edges


def find_forward_references(stages: Sequence[Stage]) -> List[Tuple[str, str]]:
    """
    References that only a later stage can satisfy

    Returns:
        List of (stage_id, table_name) pairs, in stage order
    """
    first_producer: Dict[str, int] = {}
    for index, stage in enumerate(stages):
        for name in produced_tables(stage, index):
            first_producer.setdefault(name, index)

    issues: List[Tuple[str, str]] = []
    for index, stage in enumerate(stages):
        for name in referenced_tables(stage):
            producer_index = first_producer.get(name)
            if producer_index is not None and producer_index >= index:
                issues.append((stage.id, name))

    if issues:
        logger.warning(f"Found {len(issues)} forward table reference(s): {issues}")
    return issues
