"""
Main entry point for the tianyi_auto package.

Allows running the scheduler as: python -m tianyi_auto
"""

from tianyi_auto.cli import main

if __name__ == "__main__":
    main()
