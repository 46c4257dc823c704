"""
Service layer.

Pure computation and collaborator access, no status transitions:
- turn_service: snake order derivation
- naming_service: draft order generation
- captions: category / sub-score / weight tables
- pick_records: normalization of historical pick-record shapes
- reference_table: season score lookup and import
- scoring_service: scores, breakdowns and leaderboards
- history_service: draft board and per-participant views
- roster_service / pool_service: participant and entity suppliers
"""
