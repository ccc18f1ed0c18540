"""
                        Services Module

External integrations behind the hybrid architecture pattern: each service
has a Mock (development) and a Real (production) implementation.

Services:
    - notifications: Customer SMS (Twilio) and email (SendGrid)
"""
