"""Command-line front end for the scrape run controller.

Usage:
    aijobs-scrape start https://openai.com/careers/
    aijobs-scrape start https://boards.greenhouse.io/anthropic --no-wait
    aijobs-scrape resume anthropic
    aijobs-scrape status openai
    aijobs-scrape reset openai
"""

import argparse
import logging
import sys

from aijobs.client.api_client import NetworkError, ScrapeApiClient
from aijobs.client.controller import ControllerState, ScrapeRunController
from aijobs.client.storage import RunStateStorage
from aijobs.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aijobs-scrape", description="Start and follow background job scrapes")
    parser.add_argument("--api-url", default=settings.api_base_url, help="Backend base URL")
    parser.add_argument("--state-dir", default=settings.client_state_dir, help="Where run state is kept between invocations")
    sub = parser.add_subparsers(dest="command", required=True)

    start = sub.add_parser("start", help="Start a scrape and follow it")
    start.add_argument("url", help="Company careers page or ATS board URL")
    start.add_argument("--company", help="Company name (derived from the URL by default)")
    start.add_argument("--no-wait", action="store_true", help="Return once the run is queued")

    for name, help_text in (
        ("resume", "Resume following a run started earlier"),
        ("status", "Show the server-side run status"),
        ("reset", "Clear the run on the server and locally"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("company", help="Company key, e.g. openai")

    return parser


def print_result(controller: ScrapeRunController) -> None:
    if controller.state is ControllerState.FAILED:
        print(f"Scrape failed ({controller.error.kind.value}): {controller.error.message}")
        return
    if controller.result is None:
        print(f"{controller.company_key}: {controller.state.value}")
        return

    result = controller.result
    print(f"{result.company_key}: {result.record_count} jobs, {result.jobs_with_salary} with salary")
    for record in result.records[:20]:
        salary = record.get("salary_text") or "n/a"
        print(f"  - {record.get('title')} | {record.get('location') or 'n/a'} | {salary}")
    if result.most_common_skills:
        skills = ", ".join(f"{s['skill']} ({s['count']})" for s in result.most_common_skills[:10])
        print(f"  skills: {skills}")


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = build_parser().parse_args(argv)

    api = ScrapeApiClient(base_url=args.api_url)
    storage = RunStateStorage(args.state_dir)

    try:
        if args.command == "status":
            status = api.get_status(args.company)
            print(f"{status['company_key']}: {status['status']} ({status['message']})")
            return 0

        if args.command == "start":
            controller = ScrapeRunController(api, storage)
            controller.start(args.url, company=args.company)
            if not args.no_wait:
                controller.poll()
        elif args.command == "resume":
            controller = ScrapeRunController(api, storage, company_key=args.company)
            controller.poll()
        else:
            controller = ScrapeRunController(api, storage, company_key=args.company)
            controller.reset()
    except NetworkError as e:
        logger.error(str(e))
        return 2
    finally:
        api.close()

    print_result(controller)
    return 1 if controller.state is ControllerState.FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
