# defaults.py
# Built-in specs seeded into every workspace by SpecStore.ensure_defaults().
from __future__ import annotations

from typing import List

from .dsl import action, if_command, if_file, spec
from .model import Spec

ALL_PLATFORMS = ["linux", "macos", "windows"]


def ffmpeg_spec() -> Spec:
    return spec(
        "ffmpeg",
        action("install", "rcm", "system", "install", "ffmpeg"),
        action("verify", "ffmpeg", "-version", when=[if_command("ffmpeg")]),
        action(
            "test",
            "ffmpeg",
            "-f", "lavfi", "-i", "testsrc=duration=1:size=320x240:rate=1", "-f", "null", "-",
        ),
        manager="system",
        platforms=ALL_PLATFORMS,
        min_memory_mb=512,
    )


def node_spec() -> Spec:
    return spec(
        "node",
        action("install", "rcm", "system", "install", "node"),
        action("verify", "node", "--version"),
        action("npm-init", "rcm", "npm", "init", "--yes", cwd=".", when=[if_file("package.json")]),
        version=">=18",
        manager="system",
        dependencies=["npm"],
        platforms=ALL_PLATFORMS,
        min_memory_mb=256,
    )


def php_spec() -> Spec:
    return spec(
        "php",
        action("install", "rcm", "system", "install", "php", "php-cli", "php-composer-installers"),
        action("composer-install", "rcm", "system", "install", "composer"),
        action("verify", "php", "--version"),
        action("composer-init", "rcm", "ppm", "init", cwd=".", when=[if_file("composer.json")]),
        version=">=8.1",
        manager="system",
        dependencies=["composer"],
        platforms=ALL_PLATFORMS,
        min_memory_mb=512,
    )


def cargo_spec() -> Spec:
    return spec(
        "cargo",
        action(
            "install-rustup",
            "curl", "--proto", "=https", "--tlsv1.2", "-sSf", "https://sh.rustup.rs",
            when=[if_command("rustup")],
        ),
        action("verify", "cargo", "--version"),
        action("init", "cargo", "init", "--name", "project", cwd=".", when=[if_file("Cargo.toml")]),
        action("build", "cargo", "build", cwd="."),
        action("test", "cargo", "test", cwd="."),
        manager="system",
        dependencies=["rust"],
        platforms=ALL_PLATFORMS,
        min_memory_mb=1024,
        required_commands=["curl"],
    )


def git_spec() -> Spec:
    return spec(
        "git",
        action("install", "rcm", "system", "install", "git"),
        action("verify", "git", "--version"),
        action("init", "git", "init", cwd=".", when=[if_file(".git")]),
        manager="system",
        platforms=ALL_PLATFORMS,
        min_memory_mb=64,
    )


def default_specs() -> List[Spec]:
    return [ffmpeg_spec(), node_spec(), php_spec(), cargo_spec(), git_spec()]
