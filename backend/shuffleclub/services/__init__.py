"""
Services Layer

Club business logic shared by the routes: rating math, standings,
bracket building and advancement, and backup/restore. Services take a
Session and plain values and never touch request/response objects.
"""
