from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user
from src.db.database import get_db
from src.models.users import UserProfile
from src.schemas.schema_sync import SyncItemIn, SyncRequest, SyncResponse
from src.services.sync_queue import SyncItem, replay_queue

router = APIRouter(prefix="/sync", tags=["동기화"])


@router.post("", response_model=SyncResponse)
def sync(
    body: SyncRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    POST /sync
    - 오프라인 동안 쌓인 큐를 그대로 보냄
        {"items": [{"id": "uuid", "type": "daily_progress", "action": "update",
                    "data": {"date": "2024-01-05", "tasks": {"water-intake": {"completed": true}}},
                    "retries": 0}]}
    - type: daily_progress | daily_notes | water_intake | workout_history | walk_history
        daily_notes: data.notes, water_intake: data.amount + unit (더하기)
        workout_history / walk_history: POST /workouts, /walks 와 같은 필드 (duration 은 초)
    - date 는 챌린지 기간 안, 오늘까지만 (아니면 실패로 셈)
    - 모양이 틀린 항목도 실패로 셈 → 3번째에 dropped
    - 응답
        synced:  반영 완료 → 큐에서 제거
        failed:  retries 가 1 늘어난 항목 → 큐에 다시 넣고 나중에 재전송
        dropped: 3번 실패 → 큐에서 제거 (다시 보내지 말 것), 앱 알림 "Sync Failed" 생성됨
    """
    items = [SyncItem(**item.model_dump()) for item in body.items]
    result = replay_queue(db, current_user, items)
    return SyncResponse(
        synced=result.synced,
        failed=[SyncItemIn.model_validate(i) for i in result.failed],
        dropped=[SyncItemIn.model_validate(i) for i in result.dropped],
    )
