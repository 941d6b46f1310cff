"""slackgraph: Slack driver for a host orchestration runtime."""
