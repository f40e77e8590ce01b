"""Chat platform channels. Slack RTM is the only one."""
