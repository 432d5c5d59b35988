"""
서비스 계층

코어 원장 바깥의 일을 담당합니다:
- catalog_service: 카탈로그 정규화, 금액 표시/파싱 (순수 계산)
- summary_service: 화면용 파생 값 (순수 계산)
- catalog_source / room_source / ledger_sink: 미러 저장소 읽기/쓰기
- local_snapshot: 진행 중 상태의 로컬 JSON 스냅샷
- bootstrap_service: 시작 시 원장 복원
"""
