# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Keep machine-specific values in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "SMART_TASKS_APP_NAME": "App display name (default: smart-tasks).",
    "SMART_TASKS_LOG_LEVEL": "Console logging level (default: INFO).",
    # Local storage (gitignored)
    "SMART_TASKS_DATA_DIR": "Local data directory (default: .local/smart_tasks).",
    "SMART_TASKS_STORAGE_NAMESPACE": "Sub-directory of <data_dir>/storage holding the keys (default: smart_tasks).",
    "SMART_TASKS_TASKS_KEY": "Local store key of the task list (default: tasks).",
    "SMART_TASKS_SESSION_KEY": "Local store key of the signed-in user (default: taskmanager_user).",
    # Remote task source
    "SMART_TASKS_REMOTE_BASE_URL": "REST base URL serving /tasks (empty => in-memory mock server).",
    "SMART_TASKS_REMOTE_TIMEOUT_SECONDS": "Per-request timeout for the REST source (default: 10).",
    "SMART_TASKS_REMOTE_LATENCY_SECONDS": "Simulated latency of the in-memory source (default: 0.3).",
    "SMART_TASKS_SEED_DEMO_TASKS": "Seed the in-memory source with demo tasks (true/false).",
    # Sync policy
    "SMART_TASKS_QUICK_UPDATE_MAX_FIELDS": (
        "Updates touching at most this many fields do not raise the loading flag (default: 2)."
    ),
    # Features
    "SMART_TASKS_REMINDERS_ENABLED": "Print deadline reminders (true/false).",
    "SMART_TASKS_CONSOLE_ENABLED": "Enable console REPL (true/false).",
}
