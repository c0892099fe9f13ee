from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass

BASE_ARGS = ["--width", "160", "--height", "120", "--backend", "numpy"]


@dataclass
class Example:
    name: str
    args: list[str]
    expected: list[str]

    def full_args(self) -> list[str]:
        return [sys.executable, "explore.py", *self.args]


EXAMPLES: list[Example] = [
    Example(name="defaults", args=[*BASE_ARGS], expected=["basin a:", "basin b:", "basin c:"]),
    Example(
        name="original-roots",
        args=[*BASE_ARGS, "--root-a", "-2+1j", "--root-b", "2+2j", "--root-c", "-1-2j"],
        expected=["basin c:"],
    ),
    Example(name="iterations", args=[*BASE_ARGS, "--iterations", "60"], expected=["basin a:"]),
    Example(name="zero-iterations", args=[*BASE_ARGS, "--iterations", "0"], expected=["basin a:"]),
    Example(
        name="roots",
        args=[*BASE_ARGS, "--root-a", "1", "--root-b", "-0.5+0.866j", "--root-c", "-0.5-0.866j"],
        expected=["basin c:"],
    ),
    Example(
        name="viewport",
        args=[*BASE_ARGS, "--left", "-1.5", "--top", "1.0", "--unit-width", "3"],
        expected=["basin b:"],
    ),
    Example(name="precision", args=[*BASE_ARGS, "--precision", "single"], expected=["basin a:"]),
    Example(name="repeat", args=[*BASE_ARGS, "--repeat", "5"], expected=["Renders per second:"]),
    Example(
        name="tensorflow",
        args=["--width", "160", "--height", "120", "--backend", "tensorflow", "--device", "/CPU:0"],
        expected=["basin a:"],
    ),
    Example(name="verbose", args=[*BASE_ARGS, "--verbose"], expected=["Rendering with numpy"]),
]


def _verify(example: Example, stdout: str) -> None:
    for text in example.expected:
        if text not in stdout:
            raise RuntimeError(f"Example {example.name} did not print '{text}'")


def main() -> None:
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        completed = subprocess.run(example.full_args(), check=True, capture_output=True, text=True)
        print(completed.stdout, end="")
        _verify(example, completed.stdout)
    print("\nAll CLI examples ran successfully.")


if __name__ == "__main__":
    main()
