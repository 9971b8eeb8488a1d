"""In-memory store of engineering process definitions."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..contracts import EngineeringProcess
from ..errors import ProcessNotFoundError


class ProcessRepository:
    def __init__(self, processes: Iterable[EngineeringProcess] = ()) -> None:
        self._processes: Dict[str, EngineeringProcess] = {p.id: p for p in processes}

    def save(self, process: EngineeringProcess) -> None:
        self._processes[process.id] = process

    def find_by_id(self, process_id: str) -> Optional[EngineeringProcess]:
        return self._processes.get(process_id)

    def get(self, process_id: str) -> EngineeringProcess:
        process = self._processes.get(process_id)
        if process is None:
            raise ProcessNotFoundError(process_id)
        return process

    def list_processes(self) -> List[EngineeringProcess]:
        return list(self._processes.values())
