"""
Allow running the simulator as a module: python -m coexpression_sim
"""

from .cli import main

if __name__ == "__main__":
    main()
