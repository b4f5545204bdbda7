"""
CLI utility for inspecting the job-state file.

Usage:
    poetry run relay-jobs --list
    poetry run relay-jobs --list --status failed
    poetry run relay-jobs --show 3f2a...
    poetry run relay-jobs --purge-older-than 24
"""

import argparse
import json
import sys
from pathlib import Path

from job_relay.config.settings import Settings
from job_relay.ops.jobs import JobState, JobStore


def list_jobs(store: JobStore, status: str = None) -> int:
    """Print one line per job, newest first."""
    jobs = store.list(status=status)

    print(f"{'ID':<34} {'Status':<12} {'Submitted':<34} {'Finished':<34}")
    print("=" * 116)

    for job in jobs:
        print(
            f"{job.id:<34} {job.status.value:<12} "
            f"{job.submitted_at:<34} {job.finished_at or '-':<34}"
        )

    print("=" * 116)
    print(f"{len(jobs)} job(s)")
    return 0


def show_job(store: JobStore, job_id: str) -> int:
    """Print one job as JSON."""
    job = store.get(job_id)
    if job is None:
        print(f"❌ Job not found: {job_id}")
        return 1

    print(json.dumps(job.to_dict(), indent=2))
    return 0


def purge_jobs(store: JobStore, max_age_hours: float) -> int:
    """Remove finished jobs older than the given age."""
    removed = store.purge_finished(max_age_hours)
    print(f"🗑️  Removed {removed} finished job(s) older than {max_age_hours}h")
    return 0


def main():
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Inspect and prune the job relay state file"
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List jobs",
    )
    parser.add_argument(
        "--status",
        choices=[s.value for s in JobState],
        help="Filter --list by status",
    )
    parser.add_argument(
        "--show",
        type=str,
        metavar="JOB_ID",
        help="Show one job",
    )
    parser.add_argument(
        "--purge-older-than",
        type=float,
        metavar="HOURS",
        help="Remove complete/failed jobs that finished more than HOURS ago",
    )
    parser.add_argument(
        "--state-file",
        type=Path,
        default=None,
        help="Job-state file (default: settings paths.state_file)",
    )

    args = parser.parse_args()

    if not args.list and not args.show and args.purge_older_than is None:
        parser.print_help()
        print("\n❌ Error: Must specify --list, --show or --purge-older-than")
        sys.exit(1)

    state_file = args.state_file or Path(Settings().paths.state_file)
    if not state_file.exists():
        print(f"❌ State file not found: {state_file}")
        sys.exit(1)

    store = JobStore(state_file)

    if args.list:
        exit_code = list_jobs(store, args.status)
        if exit_code != 0:
            sys.exit(exit_code)

    if args.show:
        exit_code = show_job(store, args.show)
        if exit_code != 0:
            sys.exit(exit_code)

    if args.purge_older_than is not None:
        sys.exit(purge_jobs(store, args.purge_older_than))

    sys.exit(0)


if __name__ == "__main__":
    main()
