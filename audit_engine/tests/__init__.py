'''
Call Audit Engine Test Suite

Test Modules:
-------------
- test_timestamps.py: Tolerant timestamp parsing and formatting
- test_checklist.py: Checklist normalization across array/mapping/JSON shapes
- test_confidence.py: Confidence heuristic bounds and evidence summary
- test_auto_fail.py: Critical vs warning-only partitioning, manual auto-fail
- test_overrides.py: qaNotes parsing, resolution order, upserts
- test_scoring.py: Weighted scoring, override flips, auto-fail lock
- test_timeline.py: Marker positions, anti-overlap and clustering
- test_diarization.py: Line parsing, label trust and semantic scoring
- test_call_record.py: Storage row transformation and analysis orchestration
- test_score_sync.py: Debounced score write-back
- test_repository.py: asyncpg adapters against a mocked pool
- test_api.py: Router contracts and error codes

Running Tests:
--------------
    pip install -e ".[test]"
    pytest audit_engine/tests -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
