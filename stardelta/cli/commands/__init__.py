"""Command implementations for the ``stardelta`` CLI; each module exposes ``run(args)``."""
