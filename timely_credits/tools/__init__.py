"""Operator scripts: one-shot refresh and vote account inspection."""
