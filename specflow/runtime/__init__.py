"""
runtime - Session orchestration engine.

Layers, bottom up:
    types/        value types (Command, Result, Session, Interaction, ...)
    errors        exception hierarchy
    storage       session persistence
    catalog       projects, components and stories
    documents     design document parsing
    environments  where commands run (local, cli, vscode)
    agents/       agent command builder
    steps/        step contract and helpers
    workflows/    orchestrators and workflow steps
    engine        SessionEngine state machine
    runner        subprocess execution and the session driver
"""
