#!/usr/bin/env python3
"""
Command-line runner for folding instruction sequences.

Usage:
    python fold_cli.py <sequence.json> [options]

Options:
    --config         Paper configuration JSON (default: <sequence>.paper_config.json)
    --resolution     Grid cells per side (overrides the configuration)
    --obj            Write the folded mesh to an OBJ file
    --validate-only  Check tag expressions and stop
    --animate-fps    Play animated steps at this frame rate instead of instantly

Example:
    python fold_cli.py valley.json --obj valley.obj
"""

import sys
import os
import argparse

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import PaperConfig
from paper_mesh import PaperMesh
from fold_transform import FoldStatus
from instructions import FoldingInstructions, SequenceRunner


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Run a paper folding instruction sequence',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s sequence.json
  %(prog)s sequence.json --validate-only
  %(prog)s sequence.json --resolution 40 --obj folded.obj
        """
    )
    parser.add_argument('sequence', help='Instruction sequence file (.json)')
    parser.add_argument('--config', default=None,
                        help='Paper configuration file (.json)')
    parser.add_argument('--resolution', type=int, default=None,
                        help='Grid cells per side (overrides config)')
    parser.add_argument('--obj', default=None,
                        help='Write folded mesh to this OBJ file')
    parser.add_argument('--validate-only', action='store_true',
                        help='Only validate tag expressions')
    parser.add_argument('--animate-fps', type=float, default=0.0,
                        help='Play animated steps at this frame rate (default: instant)')

    args = parser.parse_args(argv)

    # Check input file exists
    if not os.path.exists(args.sequence):
        print(f"ERROR: Sequence file not found: {args.sequence}")
        sys.exit(1)

    print(f"Loading sequence: {args.sequence}")

    try:
        instructions = FoldingInstructions.load(args.sequence)
        print(instructions.summary())

        errors = instructions.validate_expressions()
        for step_index, message in errors:
            print(f"ERROR: Step {step_index}: {message}")
        if errors:
            sys.exit(1)

        for i in range(len(instructions.steps)):
            undefined = instructions.undefined_tags_at_step(i)
            if undefined:
                print(f"WARNING: Step {i} references undefined tags: {', '.join(undefined)}")

        if args.validate_only:
            print("Expressions OK")
            return

        if args.config:
            config = PaperConfig.load(args.config)
        else:
            config = PaperConfig.load_for_sequence(args.sequence)
        if args.resolution is not None:
            config.resolution_x = args.resolution
            config.resolution_y = args.resolution

        mesh = PaperMesh(config)
        print(f"Paper: {config.width} x {config.height}, {len(mesh)} vertices, "
              f"{len(mesh.triangles)} triangles")

        runner = SequenceRunner(mesh, instructions)
        if args.animate_fps > 0:
            frames = 0
            dt = 1.0 / args.animate_fps
            while runner.tick(dt) is not FoldStatus.DONE:
                frames += 1
            print(f"Animated {frames} frame(s)")
        else:
            runner.run()

        for result in runner.results:
            print(f"  {result.moved_tag}: {len(result.moved_indices)} vertices, "
                  f"{result.static_tag}: {len(result.static_indices)} vertices")

        all_tags = sorted(mesh.get_all_tags())
        print(f"Tags on mesh: {', '.join(all_tags) if all_tags else '(none)'}")

        if args.obj:
            mesh.to_obj(args.obj)
            file_size = os.path.getsize(args.obj)
            print(f"SUCCESS: Exported to {args.obj} ({file_size:,} bytes)")

    except Exception as e:
        print(f"ERROR: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
