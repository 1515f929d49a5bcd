from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--width", "240", "--height", "150", "--max-iterations", "200", "--no-stats"]


@dataclass
class Example:
    name: str
    args: list[str]
    output: Path

    def full_args(self) -> list[str]:
        return [sys.executable, "buddha.py", *self.args, "--output", str(self.output)]


def _example(name: str, filename: str, *args: str) -> Example:
    return Example(name=name, args=[*BASE_ARGS, *args], output=EXAMPLES_ROOT / name / filename)


EXAMPLES: list[Example] = [
    _example("default", "percentile.tiff"),
    _example("max-iterations", "deep.tiff", "--max-iterations", "1000"),
    _example("viewport", "seahorse.tiff", "--real-min", "-1.0", "--real-max", "-0.5", "--imag-min", "-0.25", "--imag-max", "0.0"),
    _example("policy-fixed", "fixed.tiff", "--policy", "fixed"),
    _example("policy-power", "power.tiff", "--policy", "power"),
    _example("policy-colormap", "magma.png", "--policy", "colormap", "--colormap", "magma", "--gamma", "0.6", "--format", "png"),
    _example("backend-python", "reference.png", "--backend", "python", "--workers", "4", "--format", "png"),
    _example("verbose", "diagnostic.tiff", "--verbose"),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()


def _prepare(example: Example) -> None:
    _ensure_clean([example.output.parent])
    example.output.parent.mkdir(parents=True, exist_ok=True)


def _verify(example: Example) -> None:
    if not example.output.is_file():
        raise RuntimeError(f"Expected file {example.output} was not created")


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _prepare(example)
        subprocess.run(example.full_args(), check=True)
        _verify(example)
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
