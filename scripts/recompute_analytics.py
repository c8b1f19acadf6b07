#!/usr/bin/env python3
"""Recompute interview and global analytics from the shell.

By default only interviews left dirty (e.g. after a store outage) are
recomputed. --full rebuilds every snapshot; --rescan additionally checks the
global rollup against a direct scan of all question/answer records.
--enqueue hands the work to the RQ worker instead of running it here.
"""
import argparse
import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from interview_analytics import create_app
from interview_analytics.extensions import rq
from interview_analytics.jobs.recompute import (
    recompute_pending, recompute_all, recompute_pending_job, recompute_all_job,
)


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument('--full', action='store_true', help='rebuild every interview snapshot')
    parser.add_argument('--rescan', action='store_true', help='verify the global rollup by a direct record scan')
    parser.add_argument('--enqueue', action='store_true', help='run on the RQ worker')
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        if args.enqueue:
            if args.full:
                job = rq.enqueue(recompute_all_job, args.rescan)
            else:
                job = rq.enqueue(recompute_pending_job)
            print(f"Enqueued {getattr(job, 'id', job)}")
            return 0

        result = recompute_all(rescan=args.rescan) if args.full else recompute_pending()
        print(f"ok={result.ok} stale={result.stale} published={result.global_published} "
              f"pending={result.pending} rescan_matches={result.rescan_matches}")
        if result.error:
            print(f"error: {result.error}")
        return 0 if result.ok and result.rescan_matches is not False else 1

if __name__ == '__main__':
    sys.exit(main())
