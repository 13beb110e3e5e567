"""Per-turn orchestration: planning, validation, streaming pipeline."""
