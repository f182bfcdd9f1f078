# playwright_scenarios/login.py
import argparse, asyncio, logging, sys

from login_api.credentials import load_credentials
from login_api.driver import LoginDriver
from login_api.errors import ConfigurationError, UnknownProfile
from login_api.outcome import EXIT_CONFIG_ERROR, EXIT_UNKNOWN_SITE, Success, Timeout, exit_status
from login_api.profiles import get_profile
from login_api.settings import Settings


def positive_float(text):
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {text!r}")
    return value


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Log into one site and report the outcome.")
    p.add_argument("--site", required=True)          # profile name, e.g. asana / logz / servicenow
    p.add_argument("--headless", dest="headless", action="store_true", default=None)
    p.add_argument("--headed", dest="headless", action="store_false")
    p.add_argument("--deadline", type=positive_float, default=None, help="seconds to wait for a login signal")
    p.add_argument("--profiles-file", default=None, help="JSON file with extra site profiles")
    p.add_argument("--env-file", default=".env")
    p.add_argument("--verbose", action="store_true", help="stream browser console/page errors")
    return p.parse_args(argv)


async def print_events(events):
    while True:
        event = await events.get()
        print(f"[login] browser {event.kind}: {event.message}")


async def run(args) -> int:
    cfg = Settings(_env_file=args.env_file)
    overrides = {}
    if args.headless is not None:
        overrides["HEADLESS"] = args.headless
    if args.deadline is not None:
        overrides["DEADLINE_S"] = args.deadline
    cfg = cfg.model_copy(update=overrides)

    # everything that can be wrong with the configuration fails here, before a browser starts
    try:
        profile = get_profile(args.site, args.profiles_file or cfg.PROFILES_FILE)
        credentials = load_credentials(profile.env_prefix, args.env_file)
    except UnknownProfile as e:
        print(f"[login] {e.args[0]}", file=sys.stderr)
        return EXIT_UNKNOWN_SITE
    except ConfigurationError as e:
        print(f"[login] configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    print(f"[login] site={profile.name} url={profile.login_url} user={credentials.identifier}")

    events = asyncio.Queue() if args.verbose else None
    printer = asyncio.create_task(print_events(events)) if events is not None else None
    try:
        outcome = await LoginDriver(profile, credentials, cfg, events).run()
    finally:
        if printer is not None:
            printer.cancel()
            await asyncio.gather(printer, return_exceptions=True)
            while not events.empty():
                event = events.get_nowait()
                print(f"[login] browser {event.kind}: {event.message}")

    if isinstance(outcome, Success):
        print(f"[login] success final_url={outcome.final_url}")
        if outcome.screenshot_path:
            print(f"[login] screenshot={outcome.screenshot_path}")
    elif isinstance(outcome, Timeout):
        print(f"[login] timeout elapsed_ms={outcome.elapsed_ms}")
    else:
        print(f"[login] failure reason={outcome.reason.value} {outcome.message}")
    diagnostics = getattr(outcome, "diagnostics", None)
    if diagnostics is not None:
        print(f"[login] page_url={diagnostics.page_url} screenshot={diagnostics.screenshot_path}")
    return exit_status(outcome)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    return asyncio.run(run(args))

if __name__ == "__main__":
    sys.exit(main())
