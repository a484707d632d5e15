"""
Run a site analysis from CLI.
"""

from __future__ import annotations

import argparse
import json
from collections.abc import Sequence

from prospect_audit.analysis.errors import AnalysisError
from prospect_audit.analysis.export import (
    render_html_report,
    render_next_steps_html,
    render_next_steps_text,
    render_text_report,
)
from prospect_audit.config import configure_logging
from prospect_audit.services.site_analysis_service import (
    SiteAnalysisService,
    build_site_analysis_response,
)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Analyze a website's marketing and tracking stack.")
    parser.add_argument("url", help="Absolute http(s) URL of the page to analyze.")
    parser.add_argument(
        "--live",
        action="store_true",
        help="Render the page in headless Chromium instead of fetching static markup.",
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=("json", "text", "html"),
        default="json",
        help="Output format.",
    )
    args = parser.parse_args(argv)

    configure_logging()
    service = SiteAnalysisService()
    try:
        analysis = service.analyze(url=args.url, mode="live" if args.live else "static")
    except ValueError as exc:
        parser.error(str(exc))
    except AnalysisError as exc:
        parser.exit(1, f"Error on current page ({args.url}): {exc}\n")

    if args.output_format == "text":
        print(render_text_report(analysis.report))
        print()
        print(render_next_steps_text(analysis.next_steps))
    elif args.output_format == "html":
        print(render_html_report(analysis.report))
        print(render_next_steps_html(analysis.next_steps))
    else:
        payload = build_site_analysis_response(analysis).model_dump()
        print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
