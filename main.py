"""CLI entry point for the jobs match engine."""

import argparse
import asyncio
import logging
import sqlite3
import sys

import httpx

from src.core.config import Settings
from src.core.db import (
    create_company,
    delete_company,
    get_profile,
    init_db,
    list_companies,
    list_jobs,
    resolve_job,
    sponsor_company_ids,
    update_job_status,
    upsert_profile,
    upsert_sponsor,
)
from src.core.errors import JobsError
from src.core.schemas import JOB_STATUSES
from src.pipeline.filters import FilterParams, apply_filters, build_filters
from src.pipeline.h1b import link_companies, load_sponsors_yaml
from src.pipeline.matching import MatchingPipeline
from src.pipeline.notifier import build_notifiers
from src.pipeline.orchestrator import (
    notify_matches,
    require_profile,
    run_scrape,
    score_unscored_jobs,
    summarize,
)
from src.pipeline.skill_scorer import SkillScorer
from src.platforms.registry import ScraperRegistry
from src.profile.schema import CandidateProfile
from src.skills.taxonomy import SkillTaxonomy


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    parser = argparse.ArgumentParser(
        description="Jobs match engine - scrape ATS boards and score postings against a profile",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- search ---
    search_parser = subparsers.add_parser(
        "search", parents=[common], help="Scrape enabled companies, score and notify",
    )
    search_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the companies that would be scraped and exit",
    )
    search_parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Skip match notifications",
    )

    # --- jobs ---
    jobs_parser = subparsers.add_parser("jobs", parents=[common], help="List stored jobs")
    jobs_parser.add_argument("--min-score", type=float, default=0.0, help="Score floor")
    jobs_parser.add_argument("--title", default="", help="Comma-separated titles (swe, sre, ...)")
    jobs_parser.add_argument("--location", default="", help="Comma-separated locations or 'remote'")
    jobs_parser.add_argument("--new-grad", action="store_true", help="New-grad jobs only")
    jobs_parser.add_argument("--h1b", action="store_true", help="H1B sponsoring companies only")
    jobs_parser.add_argument("--status", choices=JOB_STATUSES, help="Filter by status")
    jobs_parser.add_argument("--limit", type=int, default=50, help="Max rows (default: 50)")

    # --- status ---
    status_parser = subparsers.add_parser(
        "status", parents=[common], help="Set a job's status by id or id prefix",
    )
    status_parser.add_argument("job", help="Job id or unique id prefix")
    status_parser.add_argument("status", choices=JOB_STATUSES)

    # --- company ---
    company_parser = subparsers.add_parser("company", help="Manage scraped companies")
    company_sub = company_parser.add_subparsers(dest="company_command", required=True)
    add_parser = company_sub.add_parser("add", parents=[common], help="Register a company")
    add_parser.add_argument("name")
    add_parser.add_argument("--platform", required=True, choices=["greenhouse", "lever"])
    add_parser.add_argument("--slug", required=True, help="Board slug on the ATS")
    add_parser.add_argument("--url", default="", help="Careers page URL")
    company_sub.add_parser("list", parents=[common], help="List companies")
    remove_parser = company_sub.add_parser("remove", parents=[common], help="Remove a company")
    remove_parser.add_argument("id", help="Company id")

    # --- profile ---
    profile_parser = subparsers.add_parser(
        "profile", parents=[common], help="Load a profile YAML into the database",
    )
    profile_parser.add_argument(
        "--file",
        default="config/profile.yaml",
        help="Path to profile YAML (default: config/profile.yaml)",
    )
    profile_parser.add_argument(
        "--show", action="store_true", help="Print the stored profile instead of loading",
    )

    # --- extract-profile ---
    extract_parser = subparsers.add_parser(
        "extract-profile", parents=[common], help="Detect skills in a resume PDF",
    )
    extract_parser.add_argument("--resume", required=True, help="Path to resume PDF file")
    extract_parser.add_argument(
        "--output",
        default="config/profile.yaml",
        help="Output path for profile YAML (default: config/profile.yaml)",
    )

    # --- link-sponsors ---
    link_parser = subparsers.add_parser(
        "link-sponsors", parents=[common], help="Link companies to H1B sponsor records",
    )
    link_parser.add_argument(
        "--sponsors", help="YAML list of sponsor records to load before linking",
    )

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str) -> Settings:
    try:
        return Settings.from_yaml(path)
    except FileNotFoundError:
        logging.getLogger(__name__).info("No config at %s, using defaults", path)
        return Settings()


async def run(settings: Settings, conn: sqlite3.Connection, notify: bool) -> None:
    """Scrape, score and notify."""
    profile = require_profile(conn)
    matcher = MatchingPipeline.from_config(settings.matcher, SkillScorer(SkillTaxonomy()))

    async with httpx.AsyncClient(
        timeout=settings.scraping.fetch_timeout_s, follow_redirects=True,
    ) as client:
        registry = ScraperRegistry.default(
            client,
            timeout=settings.scraping.fetch_timeout_s,
            user_agent=settings.scraping.user_agent,
        )
        results = await run_scrape(settings, conn, registry)

    summary = summarize(results)
    print(f"\nScrape complete: {summary.succeeded}/{summary.total} companies ok, "
          f"{summary.new_jobs} new jobs.")
    for name, error in sorted(summary.errors.items()):
        print(f"  FAILED {name}: {error}")

    scoring = score_unscored_jobs(conn, profile, matcher)
    print(f"Scored {scoring.scored} jobs ({scoring.failed} failed).")

    if notify:
        notify_matches(
            conn,
            profile,
            build_notifiers(settings.notify),
            settings.notify.min_score,
            job_ids=scoring.scored_ids,
        )


def dry_run(conn: sqlite3.Connection) -> None:
    registry = ScraperRegistry.default()
    companies = list_companies(conn, enabled_only=True)
    print(f"[DRY RUN] {len(companies)} enabled companies")
    for c in companies:
        status = "OK" if c.platform in registry else "NO ADAPTER"
        print(f"[DRY RUN] {c.name} ({c.platform}/{c.slug}): {status}")


def cmd_jobs(args: argparse.Namespace, conn: sqlite3.Connection) -> None:
    jobs = list_jobs(conn, min_score=args.min_score, status=args.status)
    params = FilterParams(
        titles=[t for t in args.title.split(",") if t.strip()],
        locations=[loc for loc in args.location.split(",") if loc.strip()],
        new_grad_only=args.new_grad,
        h1b_only=args.h1b,
    )
    sponsor_ids = sponsor_company_ids(conn) if args.h1b else None
    jobs = apply_filters(jobs, build_filters(params, sponsor_ids))

    if not jobs:
        print("No jobs match.")
        return
    for job in jobs[: args.limit]:
        score = f"{job.match_score:5.1f}" if job.match_score is not None else "  -  "
        flags = " ".join(
            flag for flag, on in (("remote", job.remote), ("new-grad", job.is_new_grad)) if on
        )
        print(f"{job.id[:8]}  [{score}]  {job.title} @ {job.company_name}  "
              f"({job.location or 'n/a'}) {flags}".rstrip())
        if job.match_reason:
            print(f"          {job.match_reason}")


def cmd_company(args: argparse.Namespace, conn: sqlite3.Connection) -> None:
    if args.company_command == "add":
        company = create_company(conn, args.name, args.platform, args.slug, args.url)
        print(f"Added {company.name} ({company.platform}/{company.slug}) id={company.id}")
    elif args.company_command == "list":
        for c in list_companies(conn):
            scraped = "never"
            if c.last_scraped_at:
                scraped = c.last_scraped_at.strftime("%Y-%m-%d %H:%M")
            sponsor = f" H1B {c.h1b_approval_rate:.0f}%" if c.sponsors_h1b else ""
            state = "" if c.enabled else " (disabled)"
            print(f"{c.id}  {c.name} ({c.platform}/{c.slug}) "
                  f"last scraped: {scraped}{sponsor}{state}")
    else:
        delete_company(conn, args.id)
        print(f"Removed company {args.id}")


def cmd_profile(args: argparse.Namespace, conn: sqlite3.Connection) -> None:
    if args.show:
        profile = get_profile(conn)
        if profile is None:
            print("No profile stored.")
            return
        print(profile.model_dump_json(indent=2))
        return
    profile = CandidateProfile.from_yaml(args.file)
    upsert_profile(conn, profile)
    print(f"Profile loaded: {len(profile.skills)} skills, "
          f"{len(profile.preferred_roles)} roles, visa required: {profile.visa_required}")


def cmd_extract_profile(args: argparse.Namespace) -> None:
    from src.profile.extractor import extract_resume_skills
    from src.skills.extractor import SkillExtractor

    print(f"Extracting skills from {args.resume}...")
    skills = extract_resume_skills(args.resume, SkillExtractor(SkillTaxonomy()))
    profile = CandidateProfile(skills=skills)
    profile.to_yaml(args.output)
    print(f"Profile written to {args.output}")
    print(f"  Skills: {skills}")
    print("Fill in roles, locations and visa needs, then run: python main.py profile")


def cmd_link_sponsors(args: argparse.Namespace, conn: sqlite3.Connection) -> None:
    if args.sponsors:
        sponsors = load_sponsors_yaml(args.sponsors)
        for sponsor in sponsors:
            upsert_sponsor(conn, sponsor)
        print(f"Loaded {len(sponsors)} sponsor records.")
    linked = link_companies(conn)
    print(f"Linked {linked} companies to sponsor records.")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "extract-profile":
        try:
            cmd_extract_profile(args)
        except (FileNotFoundError, ImportError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    conn = init_db(settings.database.path)
    try:
        if args.command == "search":
            if args.dry_run:
                dry_run(conn)
            else:
                asyncio.run(run(settings, conn, notify=not args.no_notify))
        elif args.command == "jobs":
            cmd_jobs(args, conn)
        elif args.command == "status":
            job = resolve_job(conn, args.job)
            update_job_status(conn, job.id, args.status)
            print(f"{job.title} @ {job.company_name}: {args.status}")
        elif args.command == "company":
            cmd_company(args, conn)
        elif args.command == "profile":
            cmd_profile(args, conn)
        elif args.command == "link-sponsors":
            cmd_link_sponsors(args, conn)
    except (JobsError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
