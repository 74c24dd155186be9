# cli.py

import argparse
import asyncio
import sys
from typing import List

import yaml
from tqdm import tqdm

from config import PreloaderConfig
from core.loading_metrics import LoadingMetricsRegistry
from core.loading_strategy import MissingStrategyError
from core.progressive_loader import ProgressiveLoader
from utils.file_utils import get_image_files
from utils.logging_config import setup_logging


def timed_loader(metrics: LoadingMetricsRegistry, inner):
    """Wrap an image loader so every decode is recorded as an image metric"""
    async def load(src: str):
        metrics.start_timing(src, 'image')
        success = False
        try:
            await inner(src)
            success = True
        finally:
            metrics.end_timing(src, success=success)
    return load


async def preload_images(loader: ProgressiveLoader, image_paths: List[str],
                         priority: str) -> List[BaseException]:
    """Preload every image, reporting progress; returns the failures"""
    preloader = loader.preloader
    preloader.image_loader = timed_loader(loader.metrics, preloader.image_loader)

    session = loader.create_session('preload-batch', 'data')
    session.start_loading()

    done_count = 0
    with tqdm(total=len(image_paths), desc="Preloading images") as bar:
        def on_done(_future):
            nonlocal done_count
            done_count += 1
            bar.update(1)
            session.update_progress(done_count / len(image_paths) * 100)

        futures = []
        for path in image_paths:
            future = preloader.preload_image(path, priority)
            future.add_done_callback(on_done)
            futures.append(future)

        results = await asyncio.gather(*futures, return_exceptions=True)

    failures = [r for r in results if isinstance(r, BaseException)]
    session.finish_loading(not failures, f"{len(failures)} image(s) failed" if failures else None)
    return failures


def preload_command(args) -> int:
    """Preload all images in a directory"""
    config = PreloaderConfig.load(args.config)
    setup_logging(config.log_level, config.log_dir)

    image_paths = get_image_files(args.directory, recursive=not args.no_recursive)
    if not image_paths:
        print(f"No images found in: {args.directory}")
        return 0

    priority = args.priority or config.queue.default_priority
    loader = ProgressiveLoader.from_config(config)

    print(f"Preloading {len(image_paths)} images from: {args.directory}")
    failures = asyncio.run(preload_images(loader, image_paths, priority))

    average = loader.metrics.get_average_load_time('image')
    print(f"\nPreloaded {len(image_paths) - len(failures)}/{len(image_paths)} images")
    print(f"Average load time: {average:.2f} ms")

    for failure in failures:
        print(f"  - {failure}")

    export_path = args.export or config.metrics.export_path
    if export_path:
        loader.metrics.save_metrics(export_path)
        print(f"\nMetrics saved to: {export_path}")

    return 1 if failures else 0


def strategy_command(args) -> int:
    """Print the loading strategy for a resource type"""
    config = PreloaderConfig.load(args.config)
    loader = ProgressiveLoader.from_config(config)

    if args.speed:
        loader.strategies.update_connection_speed(args.speed)

    try:
        strategy = loader.strategies.get_strategy(args.type)
    except MissingStrategyError as e:
        print(f"Error: {e}")
        return 1

    print(f"# {args.type} @ {loader.strategies.connection_speed.value}")
    print(yaml.dump(strategy.to_dict(), default_flow_style=False), end='')
    return 0


def init_config_command(args) -> int:
    """Write a default configuration file"""
    PreloaderConfig().save(args.path)
    print(f"Configuration written to: {args.path}")
    return 0


def main_cli(argv: List[str] = None) -> int:
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Progressive Preloader - Command Line Interface"
    )
    parser.add_argument('-c', '--config', default='preloader.yaml',
                        help='Configuration file')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Preload command
    preload_parser = subparsers.add_parser('preload', help='Preload images from directory')
    preload_parser.add_argument('directory', help='Directory containing images')
    preload_parser.add_argument('-p', '--priority', choices=['high', 'medium', 'low'],
                                help='Preload priority')
    preload_parser.add_argument('--no-recursive', action='store_true',
                                help='Do not descend into subdirectories')
    preload_parser.add_argument('-e', '--export', help='Output JSON file for metrics')
    preload_parser.set_defaults(func=preload_command)

    # Strategy command
    strategy_parser = subparsers.add_parser('strategy', help='Show loading strategy')
    strategy_parser.add_argument('type', help='Resource type, e.g. image or component')
    strategy_parser.add_argument('-s', '--speed', choices=['slow', 'medium', 'fast'],
                                 help='Force a connection speed')
    strategy_parser.set_defaults(func=strategy_command)

    # Init config command
    init_parser = subparsers.add_parser('init-config', help='Write default configuration')
    init_parser.add_argument('--path', default='preloader.yaml', help='Output path')
    init_parser.set_defaults(func=init_config_command)

    # Parse arguments
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    # Execute command
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main_cli())
