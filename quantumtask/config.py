import os
from pathlib import Path

# Define the root directory of the project
ROOT_DIR = Path(__file__).resolve().parent.parent

# Server
HOST = os.getenv("QUANTUMTASK_HOST", "0.0.0.0")
PORT = int(os.getenv("QUANTUMTASK_PORT", "8000"))
CORS_ORIGINS = os.getenv("QUANTUMTASK_CORS_ORIGINS", "*").split(",")

# Logging
LOG_LEVEL = os.getenv("QUANTUMTASK_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_BUFFER_SIZE = int(os.getenv("QUANTUMTASK_LOG_BUFFER", "100"))

# Workflow created on startup so the canvas always has somewhere to draw
DEFAULT_WORKFLOW = os.getenv("QUANTUMTASK_DEFAULT_WORKFLOW", "default")
