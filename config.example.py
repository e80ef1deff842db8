# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real tokens. Use .env (local, gitignored).
"""

ENV_VARS = {
    # App / logging
    "TASKMATE_APP_NAME": "App display name (default: taskmate).",
    "TASKMATE_LOG_LEVEL": "Console logging level (default: INFO).",
    # Server
    "TASKMATE_API_URL": "Task server base URL (default: http://localhost:5000).",
    "TASKMATE_HTTP_TIMEOUT_SECONDS": "Per-request timeout (default: 15).",
    "TASKMATE_HTTP_CONNECT_TIMEOUT_SECONDS": "Connect timeout (default: 5).",
    # Credential persistence
    "TASKMATE_DATA_DIR": "Local data dir for the credential and logs (default: .local/taskmate).",
    "TASKMATE_CREDENTIAL_PATH": "Credential file (default: <data_dir>/credential.json).",
    "TASKMATE_CREDENTIAL_KEY": "Key the token is stored under (default: token).",
    "TASKMATE_CREDENTIAL": "Optional bearer token used to log in on start.",
}
