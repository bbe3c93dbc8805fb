"""
Service for pipeline orchestration
Stage CRUD, source tables, flow import/export and the dependency graph
"""
import logging
import os
import tempfile
from typing import Any, Callable, Dict, List, Optional, Tuple

from stageflow.core.errors import EngineError, StageflowError
from stageflow.dtos import FlowRunReport, MaterializationResult, StreamEvent
from stageflow.models import ColumnSchema, Stage, StageType, Table, new_stage_id, new_table_id
from stageflow.pipeline.flow import export_stages, screen_candidates
from stageflow.pipeline.graph import StageEdge, StageNode, build_edges, build_graph, find_forward_references
from stageflow.pipeline.naming import is_safe_identifier, source_table_name
from stageflow.pipeline.sql.executor import AnalyticalEngine
from stageflow.repositories.pipeline_repository import PipelineStore
from stageflow.services.materialization_service import MaterializationService

logger = logging.getLogger(__name__)

EventCallback = Callable[[StreamEvent], None]


class PipelineService:
    """
    Orchestrates the live pipeline of one session
    All state changes go through MaterializationService or the store
    """

    def __init__(
        self,
        engine: AnalyticalEngine,
        store: PipelineStore,
        materializer: MaterializationService,
    ):
        self.engine = engine
        self.store = store
        self.materializer = materializer

    # ---------- source tables ----------
    def load_csv(self, file_name: str, content: bytes) -> Tuple[Table, MaterializationResult]:
        """
        Load an uploaded CSV as a source table and bootstrap its LOAD stage

        Returns:
            (source table, result of the LOAD stage registration)
        """
        table_name = source_table_name(file_name)

        fd, tmp_path = tempfile.mkstemp(suffix=".csv")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(content)
            self.engine.load_csv(table_name, tmp_path)
        finally:
            os.remove(tmp_path)

        table = self._register_engine_table(table_name, source="upload")
        load_stage = Stage(
            id=new_stage_id(),
            type=StageType.LOAD,
            description=f"Load {file_name}",
            data={"tableName": table_name, "fileName": file_name},
        )
        result = self.materializer.execute(load_stage)
        logger.info(f"Loaded {file_name} as {table_name} ({table.row_count} rows)")
        return table, result

    def create_table(self, definition: Dict[str, Any]) -> Table:
        """
        Create a table from a raw definition

        definition: {"name": str, "columns": [name | {name, type}], "rows": [[...] | {...}]}
        """
        name = definition.get("name")
        if not is_safe_identifier(name):
            raise StageflowError(f"Invalid table name {name!r}")

        columns = _columns_from_definition(definition.get("columns") or [])
        names = [c.name for c in columns]
        rows = [_row_values(r, names) for r in (definition.get("rows") or [])]

        self.engine.create_table_from_rows(name, columns, rows)
        table = self._register_engine_table(name, source="definition")
        logger.info(f"Created table {name} from definition ({len(rows)} rows)")
        return table

    def _register_engine_table(self, table_name: str, source: str) -> Table:
        columns = self.engine.describe(table_name)
        preview = self.engine.query(f"SELECT * FROM {table_name} LIMIT {self.materializer.preview_rows}")
        table = Table(
            id=new_table_id(),
            name=table_name,
            columns=columns,
            rows=preview["rows"],
            row_count=self.engine.count_rows(table_name),
            source=source,
        )
        return self.store.register_table(table)

    def delete_table(self, table_id: str) -> Table:
        table = self.store.remove_table(table_id)
        try:
            self.engine.drop_table(table.name)
        except EngineError as e:
            logger.warning(f"Table {table.name} removed from catalogue but not from engine: {e.message}")
        return table

    # ---------- stages ----------
    def add_stage(self, stage: Stage, active_table_id: Optional[str] = None) -> MaterializationResult:
        if self.store.stage_index(stage.id) is not None:
            stage = stage.replace(id=new_stage_id())
        return self.materializer.execute(stage, active_table_id=active_table_id)

    def update_stage(
        self,
        stage_id: str,
        data: Dict[str, Any],
        description: Optional[str] = None,
        stage_type: Optional[StageType] = None,
        active_table_id: Optional[str] = None,
    ) -> MaterializationResult:
        """Edit = a new payload for the same id, re-materialized in place"""
        current = self.store.get_stage(stage_id)
        edited = current.replace(
            type=stage_type or current.type,
            description=current.description if description is None else description,
            data=dict(data),
        )
        return self.materializer.execute(edited, active_table_id=active_table_id)

    def delete_stage(self, stage_id: str) -> Stage:
        stage = self.store.remove_stage(stage_id)
        logger.info(f"Deleted stage {stage_id} ({stage.type.value})")
        return stage

    def compile_preview(self, stage: Stage, active_table_id: Optional[str] = None) -> Tuple[str, Optional[str]]:
        return self.materializer.preview_sql(stage, active_table_id=active_table_id)

    # ---------- graph ----------
    def graph(self) -> Tuple[Dict[str, StageNode], List[StageEdge]]:
        stages = list(self.store.stages)
        nodes = build_graph(stages)
        return nodes, build_edges(stages, nodes)

    # ---------- flows ----------
    def export_flow(self) -> List[Dict[str, Any]]:
        return export_stages(self.store.stages)

    def import_flow(
        self,
        items: List[Any],
        mode: str = "replace",
        event_callback: Optional[EventCallback] = None,
        keep_ids: bool = False,
    ) -> FlowRunReport:
        """
        Import a flow definition and materialize it

        Stages run strictly in ascending position (names derive from it).
        Execution stops at the first failing stage. In "append" mode the
        stages before it stay materialized; in "replace" mode the previous
        stage list is put back so a failed run never shortens the pipeline.

        Args:
            items: Raw stage objects
            mode: "replace" clears the current stages first, "append" adds after them
            event_callback: Optional callback to emit progress events
        """
        if mode not in ("replace", "append"):
            raise StageflowError(f"Unknown import mode '{mode}'")

        report = FlowRunReport(mode=mode)
        self._emit(event_callback, StreamEvent(stage="started", progress=0, message=f"Importing {len(items)} stage(s)"))

        accepted, dropped = screen_candidates(items, keep_ids=keep_ids)
        report.dropped = dropped
        for d in dropped:
            self._emit(event_callback, StreamEvent(stage="dropped", progress=0, message=d.reason, data=d.model_dump()))

        existing = [] if mode == "replace" else list(self.store.stages)
        report.forward_references = [list(pair) for pair in find_forward_references(existing + accepted)]

        before = None
        if mode == "replace":
            before = self.store.snapshot()
            self.store.reset_stages()

        total = len(accepted) or 1
        for i, stage in enumerate(accepted):
            self._emit(event_callback, StreamEvent(
                stage="materializing",
                progress=int(i * 100 / total),
                message=stage.description or stage.type.value,
                data={"stage_id": stage.id},
            ))
            try:
                result = self.add_stage(stage)
            except StageflowError as e:
                logger.warning(f"Flow import stopped at stage {stage.id}: {e.message}")
                if before is not None:
                    self.store.restore_stages(before)
                    logger.warning(f"Restored the previous {len(before.stages)} stage(s)")
                report.failed_stage_id = e.stage_id or stage.id
                report.error = e.to_dict()
                self._emit(event_callback, StreamEvent(
                    stage="failed",
                    progress=int(i * 100 / total),
                    error=e.message,
                    data={"stage_id": stage.id},
                ))
                return report

            report.results.append(result)
            self._emit(event_callback, StreamEvent(
                stage="materialized",
                progress=int((i + 1) * 100 / total),
                data={"stage_id": result.stage.id, "table": result.table.name, "row_count": result.table.row_count},
            ))

        self._emit(event_callback, StreamEvent(stage="completed", progress=100, message="Flow imported"))
        return report

    def run_all(self, event_callback: Optional[EventCallback] = None) -> FlowRunReport:
        """Re-execute every live stage in order"""
        items = [s.model_dump(mode="json") for s in self.store.stages]
        return self.import_flow(items, mode="replace", event_callback=event_callback, keep_ids=True)

    @staticmethod
    def _emit(callback: Optional[EventCallback], event: StreamEvent) -> None:
        if callback:
            callback(event)


def _columns_from_definition(columns: List[Any]) -> List[ColumnSchema]:
    out: List[ColumnSchema] = []
    for c in columns:
        if isinstance(c, str):
            out.append(ColumnSchema(name=c, type="VARCHAR"))
        elif isinstance(c, dict) and isinstance(c.get("name"), str):
            out.append(ColumnSchema(name=c["name"], type=str(c.get("type") or "VARCHAR").upper()))
        else:
            raise StageflowError(f"Invalid column definition {c!r}")
    if not out:
        raise StageflowError("Table definition needs at least one column")
    return out


def _row_values(row: Any, names: List[str]) -> List[Any]:
    if isinstance(row, dict):
        return [row.get(n) for n in names]
    if isinstance(row, (list, tuple)):
        if len(row) != len(names):
            raise StageflowError(f"Row has {len(row)} values, expected {len(names)}")
        return list(row)
    raise StageflowError(f"Invalid row {row!r}")
