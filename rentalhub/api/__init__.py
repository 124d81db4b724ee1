"""
API Blueprints Package

All HTTP route handlers, organized by domain. Each module defines a Flask
Blueprint registered in rentalhub/__init__.py.

BLUEPRINT REFERENCE:
====================

Tenants & Inventory:
- businesses.py    : Businesses, per-business stats, platform stats
- customers.py     : Customers of a business
- equipment.py     : Equipment and maintenance records
- staff.py         : Employees and drivers

Bookings & Billing:
- rentals.py       : Bookings, quotes, availability, status changes
- deliveries.py    : Delivery and pickup schedule
- invoices.py      : Invoice generation and HTML rendering
- payments.py      : Stripe intents, charges and webhooks

Onboarding & Integrations:
- analysis.py      : Website analysis, web intelligence, reputation
- import_data.py   : CSV / Google Sheets import
- notifications.py : SMS through Twilio

All routes answer with {"success": true, "data": ...} or
{"success": false, "error": "..."}.
"""
