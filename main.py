"""
main.py

Entry point for the exam seating generator.
Usage: python main.py --halls halls.csv --students year2.csv year3.csv
"""

import sys

from exam_seating.cli import main

if __name__ == "__main__":
    sys.exit(main())
