"""Command-line entry point for the planner."""
from __future__ import annotations

import argparse
import copy
import json
import logging
import signal
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from .categories import load_categories, save_categories
from .config import AppConfig, ConfigError, load_config
from .events import (
    Event,
    Frequency,
    Recurrence,
    SearchField,
    StoreMode,
    event_to_dict,
    parse_weekday,
)
from .parsing import day_bounds, parse_attendee, parse_date, parse_duration, parse_notification, parse_time
from .scheduler import Scheduler
from .store import NOT_ADDED, EventStore

logger = logging.getLogger("dayplanner")

FREQUENCY_CHOICES = [option.value.lower() for option in Frequency]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dayplanner", description="Personal event planner and reminder service")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the YAML configuration file (default: built-in settings)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("run", help="Watch the events file and deliver notifications")
    commands.add_parser("list", help="List all events")

    show = commands.add_parser("show", help="Show one event in full")
    show.add_argument("number", type=int, help="Event number as shown by 'list'")

    remove = commands.add_parser("remove", help="Remove an event")
    remove.add_argument("number", type=int, help="Event number as shown by 'list'")

    commands.add_parser("clear", help="Remove all events")

    search = commands.add_parser("search", help="Search events")
    search.add_argument("field", choices=[option.value for option in SearchField])
    search.add_argument("query")

    categories = commands.add_parser("categories", help="List or add categories")
    categories.add_argument("action", nargs="?", choices=["list", "add"], default="list")
    categories.add_argument("name", nargs="?")

    add = commands.add_parser("add", help="Add an event")
    add.add_argument("title")
    add.add_argument("--description", default="")
    add.add_argument("--location", default="")
    add.add_argument("--date", help="Start date (default: today)")
    add.add_argument("--time", help="Start time (default: now)")
    add.add_argument("--duration", help="Length such as 1h30m (default: 1h, or a day if --all-day)")
    add.add_argument("--all-day", action="store_true")
    add.add_argument("--category", action="append", default=[], dest="categories")
    add.add_argument("--notify", action="append", default=[], help="MINUTES[:METHOD], may repeat")
    add.add_argument("--attendee", action="append", default=[], help="NAME:EMAIL, may repeat")
    add.add_argument("--repeat", choices=FREQUENCY_CHOICES)
    _add_recurrence_options(add)

    edit = commands.add_parser("edit", help="Change fields of an event")
    edit.add_argument("number", type=int, help="Event number as shown by 'list'")
    edit.add_argument("--title")
    edit.add_argument("--description")
    edit.add_argument("--location")
    edit.add_argument("--date", help="New start date, keeping the length")
    edit.add_argument("--time", help="New start time, keeping the length")
    edit.add_argument("--duration", help="New length such as 1h30m")
    day_kind = edit.add_mutually_exclusive_group()
    day_kind.add_argument("--all-day", action="store_const", const=True, dest="all_day")
    day_kind.add_argument("--timed", action="store_const", const=False, dest="all_day")
    edit.add_argument("--category", action="append", dest="categories", help="Replaces the categories, may repeat")
    edit.add_argument("--add-attendee", action="append", default=[], help="NAME:EMAIL, may repeat")
    edit.add_argument("--remove-attendee", action="append", type=int, default=[], help="Attendee number")
    edit.add_argument("--add-notify", action="append", default=[], help="MINUTES[:METHOD], may repeat")
    edit.add_argument("--remove-notify", action="append", type=int, default=[], help="Notification number")
    repeat = edit.add_mutually_exclusive_group()
    repeat.add_argument("--repeat", choices=FREQUENCY_CHOICES, help="Replace the recurrence rule")
    repeat.add_argument("--no-repeat", action="store_true", help="Make the event one-time")
    _add_recurrence_options(edit)
    return parser


def _add_recurrence_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--interval", type=int, default=1)
    parser.add_argument("--minute", type=int)
    parser.add_argument("--hour", type=int)
    parser.add_argument("--day", type=int)
    parser.add_argument("--weekday")
    parser.add_argument("--month", type=int)
    parser.add_argument("--year", type=int)
    parser.add_argument("--until", help="Last date of the recurrence (inclusive)")


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    try:
        app_config = load_config(Path(args.config) if args.config else None)
    except ConfigError as exc:
        logging.error("%s", exc)
        raise SystemExit(2) from exc

    if args.command == "run":
        run_service(app_config)
        return
    if args.command == "categories":
        manage_categories(app_config, args.action, args.name)
        return

    store = EventStore(
        app_config.store.path,
        auto_save=app_config.store.auto_save,
        mode=StoreMode.ACTIVE,
        watch=False,
    )
    try:
        code = run_command(store, app_config, args)
    finally:
        store.close()
    if code:
        raise SystemExit(code)


def run_service(app_config: AppConfig) -> None:
    store = EventStore(
        app_config.store.path,
        mode=StoreMode.PASSIVE,
        watch=app_config.watcher.enabled,
        poll_interval=app_config.watcher.poll_interval,
    )
    scheduler = Scheduler(store, tick_interval=app_config.scheduler.tick_interval)

    def _request_stop(signum, _frame) -> None:
        logger.info("Received signal %s, stopping", signum)
        scheduler.stop()

    signal.signal(signal.SIGTERM, _request_stop)
    signal.signal(signal.SIGINT, _request_stop)
    try:
        scheduler.run()
    finally:
        store.close()


def run_command(store: EventStore, app_config: AppConfig, args: argparse.Namespace) -> int:
    if args.command == "list":
        events = list(store.iter_events())
        if not events:
            print("No events.")
        for number, event in enumerate(events, start=1):
            print(f"{number}: {event.summary()}")
        return 0

    if args.command == "show":
        event = store.get(args.number - 1)
        if event is None:
            logger.error("No event found at number %s", args.number)
            return 1
        print(json.dumps(event_to_dict(event), indent=2, ensure_ascii=False))
        return 0

    if args.command == "remove":
        removed = store.remove(args.number - 1)
        if removed is None:
            logger.error("No event found at number %s", args.number)
            return 1
        _persist(store)
        print(f"Removed {removed.summary()}")
        return 0

    if args.command == "clear":
        store.clear()
        _persist(store)
        print("All events removed.")
        return 0

    if args.command == "search":
        for index, event in store.search(args.query, SearchField(args.field)):
            print(f"{index + 1}: {event.summary()}")
        return 0

    if args.command == "add":
        try:
            event = event_from_args(args)
        except ValueError as exc:
            logger.error("Invalid event: %s", exc)
            return 2
        _check_categories(app_config, event)
        index = store.add(event)
        if index == NOT_ADDED:
            logger.error("Error when trying to add the event")
            return 1
        _persist(store)
        print(f"{index + 1}: {event.summary()}")
        return 0

    if args.command == "edit":
        current = store.get(args.number - 1)
        if current is None:
            logger.error("No event found at number %s", args.number)
            return 1
        # work on a copy so a rejected edit leaves the stored event as it was
        event = copy.deepcopy(current)
        try:
            apply_edits(event, args)
        except ValueError as exc:
            logger.error("Invalid edit: %s", exc)
            return 2
        _check_categories(app_config, event)
        if store.replace(args.number - 1, event) is None:
            logger.error("Error when trying to edit the event")
            return 1
        _persist(store)
        print(f"{args.number}: {event.summary()}")
        return 0

    logger.error("Unknown command: %s", args.command)
    return 2


def _check_categories(app_config: AppConfig, event: Event) -> None:
    known = load_categories(app_config.categories_path)
    for category in event.categories:
        if category not in known:
            logger.warning("Category %r is not in the category list", category)


def manage_categories(app_config: AppConfig, action: str, name: Optional[str]) -> None:
    categories = load_categories(app_config.categories_path)
    if action == "add":
        if not name or not name.strip():
            logging.error("Invalid category name")
            raise SystemExit(2)
        if name.strip() not in categories:
            categories.append(name.strip())
            save_categories(app_config.categories_path, categories)
        print(f"Category added: {name.strip()}")
        return
    print("Categories:")
    for category in categories:
        print(f"\t{category}")


def event_from_args(args: argparse.Namespace, now: Optional[datetime] = None) -> Event:
    """Build an event from the ``add`` command options."""

    now = now or datetime.now()
    day = parse_date(args.date) if args.date else now.date()
    if args.all_day:
        start = datetime.combine(day, datetime.min.time())
    elif args.time:
        start = datetime.combine(day, parse_time(args.time))
    else:
        start = datetime.combine(day, now.time().replace(second=0, microsecond=0))

    if args.duration:
        length = parse_duration(args.duration)
    elif args.all_day:
        length = timedelta(days=1)
    else:
        length = timedelta(hours=1)

    recurrence = None
    if args.repeat:
        recurrence = _recurrence_from_args(args, start, all_day=args.all_day)

    return Event.create(
        args.title,
        start,
        end_time=start + length,
        description=args.description,
        location=args.location,
        recurrence=recurrence,
        attendees=[parse_attendee(value, attendee_id=str(i)) for i, value in enumerate(args.attendee)],
        notification_settings=[parse_notification(value) for value in args.notify],
        is_all_day=args.all_day,
        categories=args.categories,
        now=now,
    )


def apply_edits(event: Event, args: argparse.Namespace) -> None:
    """Apply the ``edit`` command options to ``event`` in place.

    Moving the start or replacing the recurrence clears the fired flags, so
    the reminders go out again for the new schedule.
    """

    if args.title is not None:
        event.update_title(args.title)
    if args.description is not None:
        event.update_description(args.description)
    if args.location is not None:
        event.update_location(args.location)
    if args.categories is not None:
        event.update_categories(args.categories)
    if args.all_day is not None:
        event.update_is_all_day(args.all_day)

    length = event.end_time - event.start_time
    day = parse_date(args.date) if args.date else event.start_time.date()
    if event.is_all_day:
        start = datetime.combine(day, datetime.min.time())
    elif args.time:
        start = datetime.combine(day, parse_time(args.time))
    else:
        start = datetime.combine(day, event.start_time.time())
    if args.duration:
        length = parse_duration(args.duration)
    elif args.all_day:
        length = timedelta(days=1)
    rescheduled = start != event.start_time
    if rescheduled:
        event.update_start_time(start)
    if event.end_time != start + length:
        event.update_end_time(start + length)

    for number in sorted(set(args.remove_attendee), reverse=True):
        if event.remove_attendee(number - 1) is None:
            raise ValueError(f"No attendee number {number}")
    for value in args.add_attendee:
        event.add_attendee(parse_attendee(value, attendee_id=_next_attendee_id(event)))

    for number in sorted(set(args.remove_notify), reverse=True):
        if event.remove_notification(number - 1) is None:
            raise ValueError(f"No notification number {number}")
    for value in args.add_notify:
        event.add_notification(parse_notification(value))

    if args.no_repeat:
        event.update_recurrence(None)
        event.update_is_recurring(False)
        rescheduled = True
    elif args.repeat:
        event.update_recurrence(_recurrence_from_args(args, event.start_time, all_day=event.is_all_day))
        event.update_is_recurring(True)
        rescheduled = True

    if rescheduled:
        for setting in event.notification_settings:
            setting.has_notified = False


def _next_attendee_id(event: Event) -> str:
    used = [int(a.attendee_id) for a in event.attendees if a.attendee_id.isdigit()]
    return str(max(used, default=-1) + 1)


def _recurrence_from_args(args: argparse.Namespace, start: datetime, *, all_day: bool) -> Recurrence:
    frequency = Frequency.parse(args.repeat)
    if args.interval < 1:
        raise ValueError("--interval must be at least 1")

    minute = args.minute
    hour = args.hour
    if not all_day:
        # pin the occurrence to the start time unless told otherwise
        if minute is None:
            minute = start.minute
        if hour is None and frequency is not Frequency.HOURLY:
            hour = start.hour

    end_date = None
    if args.until:
        _, end_date = day_bounds(parse_date(args.until))

    return Recurrence(
        frequency=frequency,
        interval=args.interval,
        start_date=datetime.combine(start.date(), datetime.min.time()),
        end_date=end_date,
        minute=minute,
        hour=hour,
        day=args.day,
        week_day=parse_weekday(args.weekday) if args.weekday is not None else None,
        month=args.month,
        year=args.year,
    )


def _persist(store: EventStore) -> None:
    if not store.auto_save:
        store.save()


if __name__ == "__main__":
    main()
