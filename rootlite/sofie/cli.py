"""
Code generation CLI - build a model from YAML and write its inference code.
"""

import argparse
import logging
import sys
from pathlib import Path

from rootlite.infrastructure.logging import setup_logging
from .config import build_model, load_model_config
from .renderers import RendererRegistry

logger = logging.getLogger(__name__)

_EXTENSIONS = {"cpp": ".hxx", "python": ".py"}


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Generate inference code for a transposed-convolution model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # C++ header plus weight file next to it
  python -m rootlite.sofie.cli \\
    --config ./configs/conv_transpose_2d.yaml \\
    --output ./generated/upsample2d.hxx

  # NumPy session
  python -m rootlite.sofie.cli \\
    --config ./configs/conv_transpose_2d.yaml \\
    --backend python \\
    --output ./generated/upsample2d.py
""",
    )

    parser.add_argument(
        "--config",
        required=True,
        help="YAML model description",
    )
    parser.add_argument(
        "--backend",
        choices=RendererRegistry.list_renderers(),
        help="Target language (default: value in the config, else cpp)",
    )
    parser.add_argument(
        "--output",
        help="Output source file (default: <model name> with the backend extension)",
    )
    parser.add_argument(
        "--weights",
        help="Weight file path (default: output path with .dat suffix)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Entry point; returns a process exit code."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_model_config(args.config)
        model = build_model(config)
        backend = args.backend or config.backend
        source = model.generate(backend)
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error(f"Code generation failed: {e}")
        return 1

    output = Path(args.output) if args.output else Path(f"{model.name}{_EXTENSIONS.get(backend, '.txt')}")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(source)
    logger.info(f"Wrote {backend} code to {output}")

    weights = Path(args.weights) if args.weights else output.with_suffix(".dat")
    model.write_weight_file(weights)
    return 0


if __name__ == "__main__":
    sys.exit(main())
