"""pr-tracker: follow a nixpkgs pull request through the branches it reaches."""

__version__ = "0.1.0"
