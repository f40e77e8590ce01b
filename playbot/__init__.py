"""playbot - a Slack RTM bot that compiles Go playground links and quotes Wikipedia."""

__version__ = "0.1.0"
