# Domain logic; nothing in here talks to click or rich consoles directly
# except the orchestrator and reporter.
