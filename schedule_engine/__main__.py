"""
Entry point for running the schedule engine as a module.

Usage:
    python -m schedule_engine generate input.json -o output.json
    python -m schedule_engine validate input.json
    python -m schedule_engine view output.json --teacher t1
    python -m schedule_engine conflicts output.json
"""

from schedule_engine.cli import main

if __name__ == "__main__":
    main()
