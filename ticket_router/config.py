"""Configuration for the ticket routing engine, its Redis backends and the arq worker."""

import os

REDIS_URL: str = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
REDIS_CONN_TIMEOUT: int = int(os.environ.get("REDIS_CONN_TIMEOUT", "5"))

# --- Routing ---
# Maximum number of agents visited in one workflow execution (handoff depth bound).
MAX_HANDOFFS: int = int(os.environ.get("MAX_HANDOFFS", "3"))
# Selector discards candidates whose keyword score is <= this floor.
CONFIDENCE_FLOOR: float = float(os.environ.get("CONFIDENCE_FLOOR", "0.3"))
# Coordinator role used when no candidate clears the floor.
FALLBACK_ROLE: str = os.environ.get("FALLBACK_ROLE", "PROJECT_MANAGER")
MAX_RECOMMENDED_ACTIONS: int = int(os.environ.get("MAX_RECOMMENDED_ACTIONS", "3"))
WORKFLOW_ID: str = os.environ.get("WORKFLOW_ID", "ticket_routing")

# --- Dispatch and storage ---
# inline: API runs orchestration as a detached task; queue: API enqueues an arq job.
DISPATCH_MODE: str = os.environ.get("DISPATCH_MODE", "inline")
EXECUTION_STORE: str = os.environ.get("EXECUTION_STORE", "memory")  # memory | redis
AUDIT_STORE: str = os.environ.get("AUDIT_STORE", "memory")  # memory | redis

# --- Activity log ---
ACTIVITY_MAX_EVENTS: int = int(os.environ.get("ACTIVITY_MAX_EVENTS", "200"))

LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
