"""
Application Initialization
==========================
This module parses the command line, configures logging, constructs the Main
Window and starts the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Configures logging (console + optional file).
2. Instantiates the Main Window (View) with the requested experiment.
3. Hands an optional start-up model to the viewer.
"""
import argparse
import logging
import sys
from typing import Optional, Sequence

from PySide6.QtWidgets import QApplication

from sciencelab import __version__
from sciencelab.logging_config import setup_logging
from sciencelab.view.main_window import TAB_PENDULUM, TAB_VIEWER, MainWindow

EXPERIMENTS = {"pendulum": TAB_PENDULUM, "viewer": TAB_VIEWER}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sciencelab", description="Interactive 3D science experiments.")
    parser.add_argument("--experiment", choices=sorted(EXPERIMENTS), default="pendulum",
                        help="Experiment shown at start-up.")
    parser.add_argument("--model", default=None, help="Model url or path to open in the 3D viewer.")
    parser.add_argument("--format", dest="model_format", default=None, choices=["gltf", "obj", "fbx"],
                        help="Model format (detected from the extension if omitted).")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None, help="Also write the log to this file.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    # 1. Setup Logging (Console + Optional File)
    setup_logging(level=getattr(logging, args.log_level), log_file=args.log_file)

    # 2. Create the Qt Application
    app = QApplication(sys.argv[:1])
    app.setApplicationName("Science Lab")

    # 3. Initialize the Main Window
    start_tab = TAB_VIEWER if args.model else EXPERIMENTS[args.experiment]
    window = MainWindow(start_tab=start_tab)
    if args.model:
        window.open_model(args.model, args.model_format)
    window.show()

    # 4. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
