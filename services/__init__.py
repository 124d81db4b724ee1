"""
Services package for RentalHub.
Repositories, pricing rules and external integration adapters.
"""
