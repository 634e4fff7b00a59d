# run_app.py
"""
Simple startup script for the Appointment Scheduler.
Run this from the project root directory.
"""

import sys
import os
from pathlib import Path

# Ensure we're running from project root
project_root = Path(__file__).parent
os.chdir(project_root)
sys.path.insert(0, str(project_root))

# Set environment variables
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("DEBUG_MODE", "true")


def main() -> int:
    print("📋 Starting Appointment Scheduler...")
    print(f"📁 Project root: {project_root}")
    print(f"🗄️ Document backend: {os.getenv('DOCUMENT_BACKEND', 'sheets')}")

    try:
        import streamlit.web.cli as stcli
    except ImportError:
        print("❌ Streamlit not installed. Please run: pip install -e .")
        return 1

    from scheduler.utils.config import validate_environment

    if not validate_environment():
        print("❌ Invalid configuration. Fix the settings above and try again.")
        return 1

    sys.argv = ["streamlit", "run", str(project_root / "scheduler" / "ui" / "Main.py")]
    return stcli.main()


if __name__ == "__main__":
    sys.exit(main())
