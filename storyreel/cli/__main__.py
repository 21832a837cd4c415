"""Allow running CLI as: python -m storyreel.cli"""

import sys
from pathlib import Path

# Load .env file from the project root before anything else
from dotenv import load_dotenv

env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)

from .main import main

sys.exit(main())
