#!/usr/bin/env python
"""Script to run the task checklist API server."""
import os
import sys
from pathlib import Path

# Get the directory where this script is located
project_dir = Path(__file__).resolve().parent

# Make the tasklist package importable without installing it
sys.path.insert(0, str(project_dir))
os.chdir(project_dir)

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "tasklist.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
