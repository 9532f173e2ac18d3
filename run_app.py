# run_app.py
"""
Simple startup script for the Psychology Clinic Dashboard.
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
os.environ.setdefault("API_BASE_URL", "http://localhost:3000/api/v1")

if __name__ == "__main__":
    print("🧠 Starting Psychology Clinic Dashboard...")
    print(f"📁 Project root: {project_root}")
    print(f"🔗 Backend API: {os.environ['API_BASE_URL']}")

    try:
        import streamlit.web.cli as stcli

        sys.argv = ["streamlit", "run", "clinic_dashboard/ui/Main.py"]
        sys.exit(stcli.main())
    except ImportError:
        print("❌ Streamlit not installed. Please run: pip install -e .")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error starting app: {e}")
        sys.exit(1)
