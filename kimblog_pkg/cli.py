#!/usr/bin/env python3
"""
Command-line interface for Kimblog.

Run without arguments to clean, regenerate and publish the blog.
"""

import os
import sys
import argparse
from typing import List, Optional
from . import __version__
from .core import Deployer
from .content import ContentStore
from .settings import KimblogSettings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='kimblog', description='Kimblog - rebuild and publish the blog')
    parser.add_argument('--config', type=str,
                        help='Configuration file (default: kimblog.yml in the current directory)')
    parser.add_argument('--site', type=str,
                        help='Blog directory the generator runs in')
    parser.add_argument('--publish', type=str,
                        help='Published directory served by the web server')
    parser.add_argument('--strict', action='store_const', const=True, dest='stop_on_error',
                        help='Stop at the first failing step')
    parser.add_argument('--dry-run', action='store_true',
                        help='Show the deploy steps without running them')
    parser.add_argument('--verify', action='store_true',
                        help='Compare the published directory with the generated output')
    parser.add_argument('--check', action='store_true',
                        help='Check post front matter and report problems')
    parser.add_argument('--list', action='store_true',
                        help='List posts, newest first')
    parser.add_argument('--new', type=str, metavar='TITLE',
                        help='Create a new post from the scaffold')
    parser.add_argument('--category', action='append', dest='categories',
                        help='Category for --new (repeatable)')
    parser.add_argument('--tag', action='append', dest='tags',
                        help='Tag for --new (repeatable)')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def content_store(settings) -> ContentStore:
    return ContentStore(os.path.join(settings['site'], settings['source']))


def list_posts(settings) -> int:
    for post in content_store(settings).load_posts():
        date_str = post.date.strftime('%Y-%m-%d') if post.date else '----------'
        categories = ' / '.join(post.categories)
        print(f"{date_str}  {post.title}" + (f"  [{categories}]" if categories else ''))
    return 0


def check_posts(settings) -> int:
    problems = content_store(settings).check()
    for path, message in problems:
        print(f"{path}: {message}")
    if problems:
        print(f"{len(problems)} problem(s) found.")
        return 1
    print("All posts look good.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings_loader = KimblogSettings()

        # Handle init command
        if args.init:
            config_path = settings_loader.create_sample_config(args.init)
            print(f"Created sample configuration file: {config_path}")
            source_dir = os.path.join(settings_loader.config_dir, KimblogSettings.DEFAULT_SETTINGS['source'])
            os.makedirs(source_dir, exist_ok=True)
            print(f"Posts go in: {source_dir}")
            return 0

        settings_loader.load_settings(args.config)

        # Command line arguments take precedence over the config file
        overrides = {
            'site': args.site,
            'publish': args.publish,
            'stop_on_error': args.stop_on_error,
        }
        settings = settings_loader.merge_with_args(overrides)

        if args.new:
            path = content_store(settings).new_post(args.new, categories=args.categories, tags=args.tags)
            print(f"Created post: {path}")
            return 0
        if args.list:
            return list_posts(settings)
        if args.check:
            return check_posts(settings)

        deployer = Deployer.from_settings(settings, dry_run=args.dry_run)
        if args.verify:
            differences = deployer.verify()
            for path in differences:
                print(path)
            return 1 if differences else 0

        return deployer.deploy().exit_code

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == '__main__':
    run()
