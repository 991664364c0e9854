"""Pipeline services: placeholder substitution, materialization, orchestration.

These modules hold the run logic so the CLI only deals with prompts and
printing, and tests can drive the pipeline with in-memory sources.
"""
