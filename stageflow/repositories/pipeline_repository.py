"""
Repository for pipeline state: table catalogue, stage list and Stage->Table map
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from stageflow.core.errors import StageNotFoundError, TableInUseError, TableNotFoundError
from stageflow.models.stage import Stage
from stageflow.models.table import Table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineSnapshot:
    """Read-only copy of the store at one version"""
    version: int
    stages: List[Stage]
    tables: List[Table]
    stage_tables: Dict[str, str]
    active_table_id: Optional[str]


@dataclass
class PipelineStore:
    """
    Single owner of the catalogue, the ordered stages and the Stage->Table map

    Every mutation goes through a method here and bumps `version`.
    Readers may see a store that is one materialization behind.
    """
    tables: Dict[str, Table] = field(default_factory=dict)
    stage_tables: Dict[str, str] = field(default_factory=dict)
    stages: List[Stage] = field(default_factory=list)
    active_table_id: Optional[str] = None
    version: int = 0
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    # ---------- reads ----------
    def get_table(self, table_id: str) -> Table:
        table = self.tables.get(table_id)
        if table is None:
            raise TableNotFoundError(table_id)
        return table

    def find_table_by_name(self, name: str) -> Optional[Table]:
        for table in self.tables.values():
            if table.name == name:
                return table
        return None

    def table_for_stage(self, stage_id: str) -> Optional[Table]:
        table_id = self.stage_tables.get(stage_id)
        return self.tables.get(table_id) if table_id else None

    def get_stage(self, stage_id: str) -> Stage:
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        raise StageNotFoundError(stage_id)

    def stage_index(self, stage_id: str) -> Optional[int]:
        for i, stage in enumerate(self.stages):
            if stage.id == stage_id:
                return i
        return None

    def stages_for_table(self, table_id: str) -> List[str]:
        return [sid for sid, tid in self.stage_tables.items() if tid == table_id]

    def first_table(self) -> Optional[Table]:
        return next(iter(self.tables.values()), None)

    def active_table(self) -> Optional[Table]:
        if self.active_table_id:
            return self.tables.get(self.active_table_id)
        return None

    def snapshot(self) -> PipelineSnapshot:
        with self._lock:
            return PipelineSnapshot(
                version=self.version,
                stages=[s.model_copy(deep=True) for s in self.stages],
                tables=[t.model_copy(deep=True) for t in self.tables.values()],
                stage_tables=dict(self.stage_tables),
                active_table_id=self.active_table_id,
            )

    # ---------- mutations ----------
    def commit_materialization(self, stage: Stage, table: Table, position: int) -> bool:
        """
        Record a successful materialization

        Upserts the table, points the stage at it and places the stage at
        `position` (replacing the stage with the same id, or appending).
        Table names are unique in the catalogue: any other entry already
        holding this name is evicted, and stages mapped to it lose their
        entry since the engine table now holds this stage's output.

        Returns:
            True if the stage already had a mapping entry
        """
        with self._lock:
            had_entry = stage.id in self.stage_tables
            previous_id = self.stage_tables.get(stage.id)
            if previous_id is not None and previous_id != table.id:
                # Stage now maps to a different table (e.g. a LOAD switched source)
                logger.info(f"Stage {stage.id} remapped from {previous_id} to {table.id}")

            for other in [t for t in self.tables.values() if t.name == table.name and t.id != table.id]:
                self._evict(other)

            self.tables[table.id] = table
            self.stage_tables[stage.id] = table.id

            index = self.stage_index(stage.id)
            if index is not None:
                self.stages[index] = stage
            elif position >= len(self.stages):
                self.stages.append(stage)
            else:
                self.stages.insert(position, stage)

            self.active_table_id = table.id
            self.version += 1
            return had_entry

    def register_table(self, table: Table, make_active: bool = True) -> Table:
        """Add a source table (upload or raw definition), replacing one with the same name"""
        with self._lock:
            existing = self.find_table_by_name(table.name)
            if existing is not None and existing.id != table.id:
                table = table.model_copy(update={"id": existing.id})
            self.tables[table.id] = table
            if make_active or self.active_table_id is None:
                self.active_table_id = table.id
            self.version += 1
            return table

    def set_active_table(self, table_id: str) -> Table:
        with self._lock:
            table = self.get_table(table_id)
            self.active_table_id = table.id
            self.version += 1
            return table

    def remove_stage(self, stage_id: str) -> Stage:
        """Drop a stage and invalidate its Stage->Table entry (the table stays)"""
        with self._lock:
            index = self.stage_index(stage_id)
            if index is None:
                raise StageNotFoundError(stage_id)
            stage = self.stages.pop(index)
            self.stage_tables.pop(stage_id, None)
            self.version += 1
            return stage

    def remove_table(self, table_id: str) -> Table:
        with self._lock:
            table = self.get_table(table_id)
            users = self.stages_for_table(table_id)
            if users:
                raise TableInUseError(f"Table '{table.name}' is the output of stage(s) {users}")
            del self.tables[table_id]
            if self.active_table_id == table_id:
                self.active_table_id = next(iter(self.tables), None)
            self.version += 1
            return table

    def reset_stages(self) -> List[Stage]:
        """Forget every stage and mapping entry; tables stay in the catalogue"""
        with self._lock:
            removed = list(self.stages)
            self.stages.clear()
            self.stage_tables.clear()
            self.version += 1
            return removed

    def restore_stages(self, snapshot: PipelineSnapshot) -> None:
        """
        Put back the stage list and mapping of an earlier snapshot

        Mapping entries whose table has since left the catalogue are not restored.
        """
        with self._lock:
            self.stages = [s.model_copy(deep=True) for s in snapshot.stages]
            self.stage_tables = {
                sid: tid for sid, tid in snapshot.stage_tables.items() if tid in self.tables
            }
            if snapshot.active_table_id in self.tables:
                self.active_table_id = snapshot.active_table_id
            self.version += 1

    def _evict(self, table: Table) -> None:
        del self.tables[table.id]
        for sid in self.stages_for_table(table.id):
            logger.warning(f"Stage {sid} lost its output table {table.name}: name taken over")
            del self.stage_tables[sid]
        if self.active_table_id == table.id:
            self.active_table_id = None
        logger.info(f"Evicted stale catalogue entry {table.id} ({table.name})")
