"""Application services: accounts, classes, modules, progress, tutor chat and demo."""
