"""Run yeah-build with python -m yeahbuild."""

from yeahbuild.cli import main

main()
