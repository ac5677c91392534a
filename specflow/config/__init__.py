"""Configuration loading for specflow (runtime.yaml, agent_types.yaml)."""
