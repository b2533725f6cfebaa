"""Language-model client and tool catalog."""
