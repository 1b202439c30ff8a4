"""Dealflow — an investment DAO deal-flow bot for Telegram."""
