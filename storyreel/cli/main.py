"""Main CLI entry point for storyreel.

Usage:
    python -m storyreel.cli render --title "..." --comment "..." -o out.mp4
    python -m storyreel.cli render --input post.json -o out.mp4 --orientation portrait
    python -m storyreel.cli batch posts.json --output-dir output
    python -m storyreel.cli paginate "Some long text" --max-chars 120
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from ..config import Config, Orientation, load_config
from ..exceptions import StoryreelError
from ..progress import ProgressReport
from ..text import paginate, sanitize_post_content

console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(args: argparse.Namespace) -> Config:
    config = load_config(args.config)
    if getattr(args, "mock_tts", False):
        config.tts.provider = "mock"
    if getattr(args, "backgrounds_dir", None):
        config.backgrounds.provider = "local"
        config.backgrounds.local_dir = args.backgrounds_dir
    if getattr(args, "keep_workspace", False):
        config.workspace.keep = True
    return config


def _make_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    )


def _progress_callback(progress: Progress, task_id):
    def update(report: ProgressReport) -> None:
        if report.percentage is not None:
            progress.update(task_id, completed=report.percentage, description=report.message)
        elif report.message:
            progress.update(task_id, description=report.message)

    return update


def cmd_render(args: argparse.Namespace) -> int:
    """Render one video from a title and comments."""
    from ..pipeline import Compositor, load_posts

    if args.input:
        posts = load_posts(args.input)
        if not posts:
            print(f"Error: no posts in {args.input}", file=sys.stderr)
            return 1
        title, comments = posts[0].title, posts[0].comments
    elif args.title:
        title, comments = args.title, args.comment or []
    else:
        print("Error: provide --title or --input", file=sys.stderr)
        return 1

    config = _load_config(args)
    compositor = Compositor(config)

    with _make_progress() as progress:
        task_id = progress.add_task("Starting...", total=100)
        result = asyncio.run(compositor.compose(
            title,
            comments,
            Path(args.output),
            orientation=args.orientation,
            progress=_progress_callback(progress, task_id),
        ))

    console.print(f"[bold green]Done:[/bold green] {result.output_path} ({result.duration_seconds:.1f}s)")
    return 0


def cmd_batch(args: argparse.Namespace) -> int:
    """Render one video per post in a JSON file."""
    from ..pipeline import Compositor, load_posts

    posts = load_posts(args.posts)
    if not posts:
        print(f"No posts found in {args.posts}")
        return 0

    config = _load_config(args)
    compositor = Compositor(config)

    with _make_progress() as progress:
        task_id = progress.add_task("Starting...", total=100)
        results = asyncio.run(compositor.compose_posts(
            posts,
            Path(args.output_dir),
            orientation=args.orientation,
            progress=_progress_callback(progress, task_id),
        ))

    for result in results:
        console.print(f"  {result.output_path} ({result.duration_seconds:.1f}s)")
    console.print(f"[bold]Total:[/bold] {len(results)} video(s) in {args.output_dir}")
    return 0


def cmd_paginate(args: argparse.Namespace) -> int:
    """Print the narration units a text would be split into."""
    if args.file:
        text = Path(args.file).read_text()
    elif args.text:
        text = args.text
    else:
        text = sys.stdin.read()

    max_chars = args.max_chars or load_config(args.config).captions.max_chars_per_page
    units = paginate(sanitize_post_content(text), max_chars)

    if args.json:
        print(json.dumps(units, indent=2))
        return 0

    for index, unit in enumerate(units, start=1):
        print(f"[{index}] ({len(unit)} chars) {unit}")
    return 0


def _add_render_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--orientation",
        choices=[o.value for o in Orientation],
        help="Output orientation (default: from config)",
    )
    parser.add_argument(
        "--mock-tts",
        action="store_true",
        help="Use silent mock speech instead of Edge TTS",
    )
    parser.add_argument(
        "--backgrounds-dir",
        help="Use local background videos from this directory instead of Pexels",
    )
    parser.add_argument(
        "--keep-workspace",
        action="store_true",
        help="Keep intermediate files after rendering",
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Render narrated caption videos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # render command
    render_parser = subparsers.add_parser("render", help="Render one video")
    render_parser.add_argument("--title", help="Post title")
    render_parser.add_argument(
        "--comment", action="append", help="Comment text (repeat for several)"
    )
    render_parser.add_argument("--input", help="JSON file with a post {title, comments}")
    render_parser.add_argument("--output", "-o", default="output.mp4", help="Output video path")
    _add_render_options(render_parser)
    render_parser.set_defaults(func=cmd_render)

    # batch command
    batch_parser = subparsers.add_parser("batch", help="Render a video per post")
    batch_parser.add_argument("posts", help="JSON file with a list of posts")
    batch_parser.add_argument("--output-dir", default="output", help="Output directory")
    _add_render_options(batch_parser)
    batch_parser.set_defaults(func=cmd_batch)

    # paginate command
    paginate_parser = subparsers.add_parser("paginate", help="Show narration units for a text")
    paginate_parser.add_argument("text", nargs="?", help="Text to split (default: stdin)")
    paginate_parser.add_argument("--file", "-f", help="Read text from a file")
    paginate_parser.add_argument("--max-chars", type=int, help="Characters per unit")
    paginate_parser.add_argument("--json", action="store_true", help="Print units as JSON")
    paginate_parser.set_defaults(func=cmd_paginate)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.verbose)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("Cancelled", file=sys.stderr)
        return 130
    except (StoryreelError, OSError, ValueError) as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
