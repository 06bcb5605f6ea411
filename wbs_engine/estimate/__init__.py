# CUI // SP-PROPIN
"""WBS estimate engine: synthesis, validation and roll-ups.

Modules:
    models          - requirement, role and WBS element dataclasses
    numbering       - sequential WBS number allocation
    roles           - roster lookup for proposed labor roles
    normalizer      - coerce untrusted candidates into valid elements
    mock_generator  - deterministic offline element generator
    prompts         - instruction payload for the generation service
    generator       - orchestrates generation and classifies responses
    aggregation     - hours / cost / FTE roll-ups for the estimate views
    editing         - labor-hour edits, linking, manual elements
    config          - estimate_config.yaml loader
"""
