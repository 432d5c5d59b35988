"""
사용자 정의 예외 클래스

업무 로직 예외를 한곳에 모아 API 계층에서 일괄 처리하기 쉽게 합니다.

주의:
    코어의 상태 전이 함수(매니저)는 전제 조건 위반 시 예외를 던지지 않고
    아무 일도 하지 않습니다(no-op). 아래 예외들은 주로 조회 계층과
    호출자 측 가드(HTTP 계층), 그리고 미러 저장 실패 보고에 쓰입니다.
"""


class LedgerException(Exception):
    """모든 원장 예외의 기반 클래스"""
    pass


# ============ Room 관련 예외 ============

class RoomNotFound(LedgerException):
    """방이 존재하지 않음"""
    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class InvalidStateTransition(LedgerException):
    """허용되지 않은 방 상태 전이"""
    pass


# ============ 영업 세션 관련 예외 ============

class BusinessSessionNotActive(LedgerException):
    """진행 중인 영업 세션이 없음 (영업시작 버튼을 먼저 눌러야 함)"""
    pass


class UnsettledRoomsRemain(LedgerException):
    """마감하려는데 아직 진행 중인 방이 남아 있음"""
    def __init__(self, room_names):
        self.room_names = list(room_names)
        super().__init__(
            f"{len(self.room_names)} room(s) still in progress: {', '.join(self.room_names)}"
        )


# ============ 저장소 관련 예외 ============

class LedgerStateNotReady(LedgerException):
    """원장 상태가 아직 초기화되지 않음 (lifespan 이전 접근)"""
    pass


class MirrorWriteFailed(LedgerException):
    """외부 저장소 미러 쓰기 실패 (권고성, 로컬 상태는 유지됨)"""
    def __init__(self, event_type, reason):
        self.event_type = event_type
        self.reason = reason
        super().__init__(f"Mirror write for {event_type} failed: {reason}")
