"""Default limits shared across the engine and the orchestrator."""

DEFAULT_MAX_NODE_VISITS = 100
DEFAULT_MAX_RETRIES = 3
DEFAULT_COMMAND_TIMEOUT = 300.0
SUMMARY_RESPONSE_LIMIT = 500
DEFAULT_LLM_MODEL = "openai:gpt-4o"
