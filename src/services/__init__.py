"""
Services Layer for the Claims Engine.

Import services from their modules:
- src.services.claim_validation: pre-submission claim validation
- src.services.timely_filing: filing limit rules
- src.services.edi: X12 837 generation and submission orchestration
- src.services.medical: medical code format rules
"""
