# Marks `printdesk.deps` as a package so `from printdesk.deps.auth import ...` resolves.
