"""
Run the schedule tools as a module, e.g. from a checkout without the
console script installed:

    python -m courseschedule import courseSchedule.csv --mode upsert
    python -m courseschedule show <course_id>
"""

from courseschedule.cli import main

if __name__ == "__main__":
    main()
