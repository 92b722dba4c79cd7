[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tvproxy"
version = "0.1.0"
description = "HTTP API server that proxies JSON-RPC calls to an lbrynet SDK instance, with gatekeeping, caching and publish uploads"
requires-python = ">=3.10"
keywords = ["json-rpc", "proxy", "lbrynet", "http", "wsgi", "api-server"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
]
dependencies = [
    "werkzeug>=2.2",
    "requests>=2.28",
    "pyyaml>=6.0",
    "cachetools>=5.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
tvproxy = "tvproxy.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["tvproxy"]

[tool.hatch.build.targets.sdist]
include = ["tvproxy", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
