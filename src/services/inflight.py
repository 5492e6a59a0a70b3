"""
토글 진행 중 가드 + 낙관적 업데이트 상태 머신

- 같은 (user, date, task) 토글이 처리 중이면 두 번째 요청은 바로 거절 (큐잉/병합 X)
- PendingMutation: pending → confirmed | rolled_back, 그 외 전이는 InvalidTransitionError
"""
from __future__ import annotations

import enum
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterator, Optional, Set

from src.services.errors import InvalidTransitionError, MutationInFlightError

logger = logging.getLogger(__name__)


class MutationState(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    rolled_back = "rolled_back"


@dataclass
class PendingMutation:
    key: Hashable
    previous: Dict[str, Any]
    optimistic: Dict[str, Any]
    state: MutationState = MutationState.pending
    error: Optional[str] = None
    result: Dict[str, Any] = field(default_factory=dict)

    @property
    def current(self) -> Dict[str, Any]:
        """클라이언트에 보여줄 값: 확정 전엔 낙관값, 롤백되면 이전값"""
        if self.state == MutationState.rolled_back:
            return self.previous
        if self.state == MutationState.confirmed and self.result:
            return self.result
        return self.optimistic

    def _require_pending(self, target: MutationState) -> None:
        if self.state != MutationState.pending:
            raise InvalidTransitionError(f"{self.state.value} -> {target.value} not allowed")

    def confirm(self, result: Optional[Dict[str, Any]] = None) -> None:
        self._require_pending(MutationState.confirmed)
        self.state = MutationState.confirmed
        if result:
            self.result = dict(result)

    def roll_back(self, error: str) -> None:
        self._require_pending(MutationState.rolled_back)
        self.state = MutationState.rolled_back
        self.error = error


class InFlightGuard:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys: Set[Hashable] = set()

    def is_in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._keys

    def acquire(self, key: Hashable) -> None:
        with self._lock:
            if key in self._keys:
                raise MutationInFlightError(key)
            self._keys.add(key)

    def release(self, key: Hashable) -> None:
        with self._lock:
            self._keys.discard(key)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        self.acquire(key)
        try:
            yield
        finally:
            self.release(key)


# 프로세스 단위 싱글톤 (워커 여러 개면 워커별로 따로 동작)
task_toggle_guard = InFlightGuard()


def toggle_key(user_id: str, day: Any, task_id: str) -> tuple:
    return (user_id, str(day), task_id)
