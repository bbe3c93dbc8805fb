"""
Service for stage materialization
Validates, resolves inputs, compiles and runs one stage against the engine
"""
import logging
import threading
import time
from typing import Optional, Tuple

from stageflow.core.errors import EngineError, ExecutionError, ResolutionError
from stageflow.dtos import MaterializationResult
from stageflow.models import Stage, StageType, Table, new_table_id
from stageflow.pipeline.naming import joined_table_name, staging_table_name, table_name_for
from stageflow.pipeline.sql.compiler import compile_stage
from stageflow.pipeline.sql.executor import AnalyticalEngine
from stageflow.pipeline.stages.validator import ensure_valid
from stageflow.repositories.pipeline_repository import PipelineStore

logger = logging.getLogger(__name__)

# Stage types whose SQL reads from `data.table` or, failing that, the resolved default
_DEFAULT_INPUT_TYPES = {
    StageType.FILTER,
    StageType.GROUP,
    StageType.SELECT,
    StageType.SORT,
    StageType.AGGREGATE,
}


class MaterializationService:
    """
    Materializes stages into engine tables

    All-or-nothing per stage: the store is only touched after the engine
    has created the table and its schema and preview have been read back.
    One materialization runs at a time.
    """

    def __init__(self, engine: AnalyticalEngine, store: PipelineStore, preview_rows: int = 100):
        self.engine = engine
        self.store = store
        self.preview_rows = preview_rows
        self._lock = threading.Lock()

    def execute(self, stage: Stage, active_table_id: Optional[str] = None) -> MaterializationResult:
        """
        Materialize a stage and record its output table

        Args:
            stage: Stage to run (new, or an edit of an existing stage id)
            active_table_id: Table the user last viewed (fallback input)

        Returns:
            MaterializationResult with the catalogue table

        Raises:
            StageValidationError, ResolutionError, CompileError, ExecutionError
        """
        with self._lock:
            started = time.time()
            ensure_valid(stage)

            position = self._position_for(stage)

            if stage.type == StageType.LOAD:
                return self._register_load(stage, position, started)

            input_table = self.resolve_input_table(stage, position, active_table_id)
            sql = compile_stage(stage, input_table)
            table_name = table_name_for(position, stage.type)

            columns, rows, row_count = self._run(stage, table_name, sql)

            existing = self._table_to_reuse(stage, table_name)
            table = Table(
                id=existing.id if existing else new_table_id(),
                name=table_name,
                columns=columns,
                rows=rows,
                row_count=row_count,
                stage_id=stage.id,
                source="stage",
            )
            previous = self.store.table_for_stage(stage.id)
            mapping_updated = self.store.commit_materialization(stage, table, position)
            if previous is not None and previous.name != table_name:
                self._discard_renamed(previous.name)

            duration_ms = int((time.time() - started) * 1000)
            logger.info(
                f"Materialized stage {stage.id} ({stage.type.value}) as {table_name}: "
                f"{row_count} rows in {duration_ms}ms"
            )
            return MaterializationResult(
                stage=stage,
                table=table,
                mapping_updated=mapping_updated,
                sql=sql,
                input_table=input_table,
                duration_ms=duration_ms,
            )

    def resolve_input_table(
        self,
        stage: Stage,
        position: int,
        active_table_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Resolve the default input table name for a stage

        Priority:
        1. Explicit data.table (JOIN/UNION/CUSTOM name their tables themselves)
        2. Output of the stage right before `position`
        3. Active table, else the first table in the catalogue

        Raises:
            ResolutionError: a table-consuming stage has nothing to read from
        """
        explicit = stage.referenced_table()
        if explicit:
            return explicit

        if position > 0 and position - 1 < len(self.store.stages):
            previous = self.store.stages[position - 1]
            produced = self.store.table_for_stage(previous.id)
            if produced is not None:
                return produced.name

        fallback = None
        if active_table_id:
            fallback = self.store.tables.get(active_table_id)
        if fallback is None:
            fallback = self.store.active_table() or self.store.first_table()
        if fallback is not None:
            return fallback.name

        if stage.type in _DEFAULT_INPUT_TYPES:
            raise ResolutionError(
                f"No input table available for {stage.type.value} stage; load a table first",
                stage_id=stage.id,
            )
        return None

    def preview_sql(self, stage: Stage, active_table_id: Optional[str] = None) -> Tuple[str, Optional[str]]:
        """Validate, resolve and compile without touching the engine"""
        ensure_valid(stage)
        position = self._position_for(stage)
        if stage.type == StageType.LOAD:
            table = self._loaded_table(stage)
            return compile_stage(stage, table.name), table.name
        input_table = self.resolve_input_table(stage, position, active_table_id)
        return compile_stage(stage, input_table), input_table

    def _position_for(self, stage: Stage) -> int:
        index = self.store.stage_index(stage.id)
        return index if index is not None else len(self.store.stages)

    def _register_load(self, stage: Stage, position: int, started: float) -> MaterializationResult:
        """LOAD stages are not executed: the loaded table is their output"""
        table = self._loaded_table(stage)
        mapping_updated = self.store.commit_materialization(stage, table, position)
        logger.info(f"Registered LOAD stage {stage.id} -> {table.name}")
        return MaterializationResult(
            stage=stage,
            table=table,
            mapping_updated=mapping_updated,
            input_table=table.name,
            duration_ms=int((time.time() - started) * 1000),
        )

    def _loaded_table(self, stage: Stage) -> Table:
        table_name = stage.data.get("tableName")
        table = self.store.find_table_by_name(table_name) if table_name else None
        if table is None:
            raise ResolutionError(f"Loaded table '{table_name}' is not in the catalogue", stage_id=stage.id)
        return table

    def _table_to_reuse(self, stage: Stage, table_name: str) -> Optional[Table]:
        """
        Catalogue entry whose id the new result keeps

        The stage's own entry first; else an entry with the same output name
        that no stage maps to any more (e.g. after a flow re-import).
        """
        own = self.store.table_for_stage(stage.id)
        if own is not None:
            return own
        same_name = self.store.find_table_by_name(table_name)
        if same_name is not None and not self.store.stages_for_table(same_name.id):
            return same_name
        return None

    def _run(self, stage: Stage, table_name: str, sql: str):
        """
        Build the result under a staging name, read it back, then swap it in

        The live table is only replaced once every read-back has succeeded.
        """
        staging = staging_table_name(table_name)
        views = {}
        if stage.type == StageType.JOIN:
            alias = joined_table_name(stage.data["leftTable"], stage.data["rightTable"])
            views[alias] = f"SELECT * FROM {table_name}"

        try:
            self.engine.create_or_replace_table(staging, sql)
            columns = self.engine.describe(staging)
            preview = self.engine.query(f"SELECT * FROM {staging} LIMIT {self.preview_rows}")
            row_count = self.engine.count_rows(staging)
            self.engine.promote_table(staging, table_name, views)
        except EngineError as e:
            logger.error(f"Stage {stage.id} failed in engine: {e.message}")
            self._discard(staging)
            raise ExecutionError(stage.id, e.message, description=stage.description, sql=sql) from e

        return columns, preview["rows"], row_count

    def _discard_renamed(self, old_name: str) -> None:
        """Drop the table a stage produced under its previous position"""
        if self.store.find_table_by_name(old_name) is None:
            logger.info(f"Dropping {old_name}: its stage now materializes elsewhere")
            self._discard(old_name)

    def _discard(self, table_name: str) -> None:
        try:
            self.engine.drop_table(table_name)
        except EngineError as e:
            logger.warning(f"Could not drop table {table_name}: {e.message}")
