"""
Countdown backend package.

Holds the durable countdown store (`store`), the pure time-remaining clock
(`clock`) and the FastAPI application that serves them (`main`).
"""
