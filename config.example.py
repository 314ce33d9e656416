# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Keep them in .env (local, gitignored).

Command definitions live in a YAML file; see commands.example.yaml.
"""

ENV_VARS = {
    # App / logging
    "COMMANDBOT_APP_NAME": "App display name (default: commandbot).",
    "COMMANDBOT_LOG_LEVEL": "Console logging level (default: INFO).",
    # Commands
    "COMMANDBOT_COMMANDS_PATH": "YAML command definitions (default: commands.yaml).",
    "COMMANDBOT_TASK_LOG_DIR": "Base directory for relative per-command log files (default: <data_dir>/logs).",
    # Transport
    "COMMANDBOT_MATRIX_ENABLED": "Use the Matrix transport instead of the console (true/false).",
    "COMMANDBOT_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "COMMANDBOT_MATRIX_USER_ID": "Matrix user ID (bot). Also used to recognize mentions.",
    "COMMANDBOT_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "COMMANDBOT_MATRIX_ROOMS": "Optional allowlist of room IDs (empty => all rooms).",
    # Fallback responder (LLM / OpenRouter)
    "COMMANDBOT_FALLBACK_ENABLED": "Answer unmatched direct/mention messages (true/false, default: true).",
    "COMMANDBOT_OPENROUTER_API_KEY": "OpenRouter API key (without it the fallback runs offline).",
    "COMMANDBOT_OPENROUTER_BASE_URL": "OpenRouter base URL (default: https://openrouter.ai/api/v1).",
    "COMMANDBOT_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "COMMANDBOT_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "COMMANDBOT_APP_TITLE": "Optional OpenRouter metadata header title.",
    "COMMANDBOT_LLM_FIRST_TOKEN_TIMEOUT_SECONDS": "Give up on a model without a first token after this long (default: 20).",
    "COMMANDBOT_LLM_READ_TIMEOUT_SECONDS": "HTTP read timeout (default: 25).",
    "COMMANDBOT_LLM_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    # Paths (gitignored)
    "COMMANDBOT_DATA_DIR": "Local data directory (default: .local/commandbot).",
    "COMMANDBOT_MATRIX_STORE_PATH": "Matrix session store path (default: <data_dir>/matrix_store).",
}
