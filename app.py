# app.py
"""
Application entry point.

Usage:
  python app.py alerts branches.json
  python app.py alerts branches.json --type lowStock --as-of 2025-06-01
  python app.py locations branches.json
  python app.py reorder branches.json --lead-time-days 21
  python app.py locate paracetamol --data branches.json
  python app.py export branches.json --out alerts.xlsx
  python app.py watch branches.json --interval 30
"""

from drugstock.adapters.cli import main

if __name__ == "__main__":
    main()
