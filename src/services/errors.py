# 서비스 계층 예외 → 라우터에서 HTTPException 으로 변환


class TrackerError(Exception):
    """서비스 계층 공통 베이스"""


class UnknownTaskError(TrackerError, ValueError):
    def __init__(self, task_id: str):
        super().__init__(f"unknown task id: {task_id}")
        self.task_id = task_id


class ChallengeNotFoundError(TrackerError):
    pass


class ActiveChallengeConflictError(TrackerError):
    """활성 챌린지 유니크 충돌인데 다시 조회해도 없는 경우"""


class ProgressWriteError(TrackerError):
    """daily_progress 쓰기 재시도 초과"""


class MutationInFlightError(TrackerError):
    def __init__(self, key):
        super().__init__(f"mutation already in flight: {key}")
        self.key = key


class InvalidTransitionError(TrackerError):
    pass


class PhotoStorageError(TrackerError):
    pass


class InvalidPhotoError(PhotoStorageError, ValueError):
    pass


class PushNotReadyError(TrackerError, RuntimeError):
    pass


class DayOutOfRangeError(TrackerError, ValueError):
    """챌린지 1~75일 밖이거나 아직 오지 않은 날"""


class InvalidEntryError(TrackerError, ValueError):
    """물/운동/걷기 기록 값 오류 (단위, 음수 등)"""
