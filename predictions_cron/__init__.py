"""
Prediction market cron service.

Runs the football fixture sync, live score sync and prediction settlement
jobs of the football sync API on a schedule.
"""
