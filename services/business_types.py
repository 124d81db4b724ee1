"""
Per-business-type presets used by onboarding, analysis and sample data.
"""

from typing import Dict, List, TypedDict

BUSINESS_TYPES = ('heavy_equipment', 'party_rental', 'car_rental', 'tool_rental', 'custom')


class Branding(TypedDict):
    primary_color: str
    secondary_color: str


class CustomField(TypedDict, total=False):
    name: str
    type: str
    required: bool
    options: List[str]


class BusinessPreset(TypedDict):
    industry: str
    features: List[str]
    branding: Branding
    custom_fields: List[CustomField]


PRESETS: Dict[str, BusinessPreset] = {
    'heavy_equipment': {
        'industry': 'Construction Equipment Rental',
        'features': ['GPS Equipment Tracking', 'Maintenance Scheduling', 'Delivery Services',
                     'Operator Training', 'Safety Management'],
        'branding': {'primary_color': '#FF6600', 'secondary_color': '#003366'},
        'custom_fields': [
            {'name': 'Make', 'type': 'text', 'required': True},
            {'name': 'Model', 'type': 'text', 'required': True},
            {'name': 'Year', 'type': 'number', 'required': True},
            {'name': 'Engine Hours', 'type': 'number', 'required': True},
            {'name': 'Operating Weight', 'type': 'number', 'required': False},
        ],
    },
    'party_rental': {
        'industry': 'Event & Party Services',
        'features': ['Event Planning', 'Setup Services', 'Delivery & Pickup',
                     'Inventory Management', 'Customer Portal'],
        'branding': {'primary_color': '#E91E63', 'secondary_color': '#673AB7'},
        'custom_fields': [
            {'name': 'Color', 'type': 'select', 'required': True,
             'options': ['White', 'Black', 'Gold', 'Silver']},
            {'name': 'Size/Capacity', 'type': 'text', 'required': True},
            {'name': 'Setup Required', 'type': 'boolean', 'required': True},
        ],
    },
    'car_rental': {
        'industry': 'Vehicle Rental Services',
        'features': ['GPS Vehicle Tracking', 'Insurance Management', 'Mileage Monitoring',
                     'Digital Contracts', 'Mobile Check-in'],
        'branding': {'primary_color': '#2196F3', 'secondary_color': '#FF9800'},
        'custom_fields': [
            {'name': 'Make', 'type': 'text', 'required': True},
            {'name': 'Model', 'type': 'text', 'required': True},
            {'name': 'Year', 'type': 'number', 'required': True},
            {'name': 'Mileage', 'type': 'number', 'required': True},
            {'name': 'License Plate', 'type': 'text', 'required': True},
        ],
    },
    'tool_rental': {
        'industry': 'Tool & Equipment Rental',
        'features': ['Tool Reservations', 'Safety Management', 'Maintenance Tracking',
                     'Quick Checkout', 'Inventory Control'],
        'branding': {'primary_color': '#4CAF50', 'secondary_color': '#FF5722'},
        'custom_fields': [
            {'name': 'Brand', 'type': 'text', 'required': True},
            {'name': 'Model', 'type': 'text', 'required': True},
            {'name': 'Power Type', 'type': 'select', 'required': True,
             'options': ['Electric', 'Battery', 'Gas', 'Manual']},
        ],
    },
    'custom': {
        'industry': 'Rental Services',
        'features': ['Inventory Management', 'Customer Portal', 'Booking System', 'Payment Processing'],
        'branding': {'primary_color': '#3B82F6', 'secondary_color': '#10B981'},
        'custom_fields': [
            {'name': 'Item Name', 'type': 'text', 'required': True},
            {'name': 'Category', 'type': 'text', 'required': True},
            {'name': 'Daily Rate', 'type': 'number', 'required': True},
        ],
    },
}

# Checked in order; the first type with a keyword hit wins
TYPE_KEYWORDS = [
    ('heavy_equipment', ('excavator', 'bulldozer', 'crane')),
    ('party_rental', ('party', 'wedding', 'tent')),
    ('car_rental', ('car', 'vehicle', 'truck')),
    ('tool_rental', ('tool', 'drill', 'saw')),
]

# name, category, model, daily, weekly, monthly, status
SAMPLE_EQUIPMENT = {
    'heavy_equipment': [
        ('CAT 320 Excavator', 'Excavators', '320GC', 450, 2700, 10800, 'available'),
        ('John Deere Skid Steer', 'Skid Steers', '332G', 280, 1680, 6720, 'available'),
        ('Bobcat Mini Excavator', 'Mini Excavators', 'E35', 320, 1920, 7680, 'available'),
        ('CAT Bulldozer', 'Bulldozers', 'D6T', 850, 5100, 20400, 'available'),
        ('Liebherr Crane', 'Cranes', 'LTM 1090', 1200, 7200, 28800, 'available'),
    ],
    'party_rental': [
        ('20x30 White Tent', 'Tents', 'Premium', 150, 900, 3600, 'available'),
        ('Round Tables (10)', 'Tables', '60 inch', 80, 480, 1920, 'available'),
        ('Chiavari Chairs (100)', 'Chairs', 'Gold', 200, 1200, 4800, 'available'),
        ('Dance Floor 20x20', 'Flooring', 'Black/White', 300, 1800, 7200, 'available'),
    ],
    'default': [
        ('Power Drill Set', 'Tools', 'Professional', 25, 150, 600, 'available'),
        ('Generator 5000W', 'Generators', 'Portable', 75, 450, 1800, 'available'),
        ('Pressure Washer', 'Cleaning', 'Commercial', 60, 360, 1440, 'available'),
    ],
}

SAMPLE_CUSTOMERS = [
    {
        'name': 'ABC Construction Co.',
        'company_name': 'ABC Construction Co.',
        'contact_name': 'John Smith',
        'email': 'contact@abcconstruction.com',
        'phone': '(555) 123-4567',
        'address': '123 Builder St, Construction City, ST 12345',
        'payment_terms': 'net_30',
        'credit_limit': 10000,
    },
    {
        'name': 'Elite Events LLC',
        'company_name': 'Elite Events LLC',
        'contact_name': 'Sarah Johnson',
        'email': 'info@eliteevents.com',
        'phone': '(555) 987-6543',
        'address': '456 Party Ave, Event Town, ST 67890',
        'payment_terms': 'net_15',
        'credit_limit': 5000,
    },
]


def get_preset(business_type: str) -> BusinessPreset:
    return PRESETS.get(business_type, PRESETS['custom'])


def detect_business_type(content: str) -> str:
    """Keyword classification used when AI analysis is unavailable."""
    text = (content or '').lower()
    for business_type, keywords in TYPE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return business_type
    return 'custom'


def sample_equipment_for(business_type: str):
    return SAMPLE_EQUIPMENT.get(business_type, SAMPLE_EQUIPMENT['default'])
