#!/usr/bin/env python3
"""
Model Setup Script - Pre-download rembg Models

Downloads the rembg model weights and runs one inference on a blank image so
the first real request does not pay the download cost.

Run this during Docker build to avoid download at runtime:
    python scripts/setup_models.py

Environment variables:
    REMBG_MODEL: Model to fetch (default: u2net)
    U2NET_HOME: Directory rembg caches models in (default: ~/.u2net)
"""

import io
import os
import sys
import time
import logging
import argparse
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def setup_models(models, cache_dir=None, validate: bool = True) -> bool:
    """Download (and optionally validate) each rembg model.

    Args:
        models: rembg model names
        cache_dir: Overrides U2NET_HOME when given
        validate: Whether to run one inference per model
    """
    if cache_dir:
        Path(cache_dir).mkdir(parents=True, exist_ok=True)
        os.environ["U2NET_HOME"] = str(Path(cache_dir).absolute())

    from rembg import new_session, remove
    from PIL import Image

    logger.info("=" * 60)
    logger.info("rembg Model Setup Script")
    logger.info("=" * 60)
    logger.info(f"Cache directory: {os.environ.get('U2NET_HOME', '~/.u2net')}")
    logger.info(f"Models: {', '.join(models)}")
    logger.info("=" * 60)

    total_start = time.time()
    ok = True

    for name in models:
        start = time.time()
        try:
            session = new_session(name)
        except Exception as e:
            logger.error(f"[{name}] download/load failed: {e}")
            ok = False
            continue
        logger.info(f"[{name}] loaded in {time.time() - start:.1f}s")

        if not validate:
            continue

        buffer = io.BytesIO()
        Image.new("RGB", (64, 64), (255, 255, 255)).save(buffer, format="PNG")
        try:
            output = remove(buffer.getvalue(), session=session)
            logger.info(f"[{name}] validation inference OK ({len(output)} bytes)")
        except Exception as e:
            logger.error(f"[{name}] validation inference failed: {e}")
            ok = False

    logger.info("=" * 60)
    logger.info(f"Done in {time.time() - total_start:.1f}s - {'success' if ok else 'FAILED'}")
    logger.info("=" * 60)

    return ok


def main():
    parser = argparse.ArgumentParser(
        description="Download and setup rembg models for the background removal service"
    )
    parser.add_argument(
        "models",
        nargs="*",
        default=[os.environ.get("REMBG_MODEL", "u2net")],
        help="rembg model names to fetch"
    )
    parser.add_argument(
        "--cache-dir",
        default=os.environ.get("U2NET_HOME"),
        help="Directory to cache models"
    )
    parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Skip model validation"
    )

    args = parser.parse_args()

    success = setup_models(
        args.models,
        cache_dir=args.cache_dir,
        validate=not args.no_validate,
    )

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
