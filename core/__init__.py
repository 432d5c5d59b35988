"""
핵심 원장 로직

이 package 는 화면/저장소와 무관한 원장 상태 전이를 담당합니다:
- store: LedgerState 와 @transactional (스냅샷/롤백, 버전, 구독자 알림)
- state_machine: 방 상태 전이 (대기 ↔ 진행중)
- Manager/Engine: 방, 사용 내역, 영업 세션, 정산
- outbox: 미러 저장소로 보내는 이벤트 처리
- locks: 동시성 제어
"""
