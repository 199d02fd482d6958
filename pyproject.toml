[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mcuclient"
version = "0.1.0"
description = "Small HTTP, WebSocket, Base64, URL-encoding and JSON building blocks for byte-stream clients"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "websocket", "json", "base64", "url-encoding", "client"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mcuclient"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
