"""Service layer: rates, quotes, backend access, polling and notifications"""
