"""
Generate the MPG global ranking page from a source checkout
"""
import asyncio
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from mpg_ranking.main import main

if __name__ == "__main__":
    print("MPG GLOBAL RANKING")
    print("=" * 50)
    sys.exit(asyncio.run(main(sys.argv[1:])))
