[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ghnotify"
version = "1.0.0"
description = "GitHub notification monitor with desktop alerts, a local cache and a systemd timer"
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["github", "notifications", "desktop", "systemd", "waybar", "cli"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
gh-notify = "ghnotify.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ghnotify"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
