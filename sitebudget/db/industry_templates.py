# sitebudget/db/industry_templates.py
"""
Starter line items and materials per industry.
Used by CompanyService.populate_industry to seed a new tenant's catalogue.
"""
from decimal import Decimal

from sitebudget.db.enums import LineItemCategory as C


INDUSTRY_LABELS = {
    "construction": "Construction",
    "real_estate": "Real Estate",
    "manufacturing": "Manufacturing",
    "software_development": "Software Development",
    "other": "Other",
}


# (name, category, description)
_LINE_ITEMS = {
    "construction": [
        ("Site Preparation", C.site_preparation, "Land clearing, excavation, and site preparation work"),
        ("Foundation Work", C.foundation, "Foundation excavation, concrete pouring, and reinforcement"),
        ("Structural Framework", C.structural, "Steel or concrete structural framework installation"),
        ("Roofing Installation", C.roofing, "Roof structure and covering installation"),
        ("Electrical Installation", C.electrical, "Electrical wiring, outlets, and fixtures"),
        ("Plumbing Installation", C.plumbing, "Plumbing pipes, fixtures, and drainage systems"),
        ("Interior Finishing", C.finishing, "Painting, tiling, and interior finishes"),
        ("External Works", C.external_works, "Landscaping, driveways, and external features"),
    ],
    "real_estate": [
        ("Land Acquisition", C.land_purchase, "Purchase and legal documentation of land"),
        ("Property Development", C.development_resources, "Overall property development and construction"),
        ("Marketing & Sales", C.marketing, "Property marketing and sales activities"),
        ("Legal & Documentation", C.operations, "Legal fees and property documentation"),
        ("Property Management", C.operations, "Ongoing property management services"),
        ("Utilities Setup", C.infrastructure, "Water, electricity, and utility connections"),
    ],
    "manufacturing": [
        ("Raw Material Procurement", C.operations, "Purchase of raw materials for production"),
        ("Production Process", C.operations, "Manufacturing and production activities"),
        ("Quality Control", C.testing_qa, "Quality assurance and testing"),
        ("Packaging", C.operations, "Product packaging and labeling"),
        ("Equipment Maintenance", C.infrastructure, "Machinery maintenance and repairs"),
        ("Logistics & Distribution", C.operations, "Transportation and distribution"),
    ],
    "software_development": [
        ("Development Resources", C.development_resources, "Software development team and resources"),
        ("Design & UX", C.design_tools, "UI/UX design and prototyping"),
        ("Testing & QA", C.testing_qa, "Software testing and quality assurance"),
        ("Infrastructure & Hosting", C.infrastructure, "Cloud hosting and infrastructure"),
        ("Marketing & Growth", C.marketing, "Product marketing and user acquisition"),
        ("Operations & Support", C.operations, "Customer support and operations"),
    ],
    "other": [
        ("Project Management", C.operations, "General project management activities"),
        ("Resource Allocation", C.operations, "General resource allocation"),
        ("Quality Assurance", C.testing_qa, "Quality control and assurance"),
        ("Marketing Activities", C.marketing, "Marketing and promotional activities"),
    ],
}

# (name, unit, unit price, supplier)
_MATERIALS = {
    "construction": [
        ("Cement", "bag", "5000.00", "General Suppliers"),
        ("Sand", "ton", "25000.00", "General Suppliers"),
        ("Granite", "ton", "35000.00", "General Suppliers"),
        ("Iron Rods (12mm)", "length", "8000.00", "Steel Suppliers"),
        ("Iron Rods (16mm)", "length", "12000.00", "Steel Suppliers"),
        ("Blocks (9 inch)", "piece", "250.00", "Block Factory"),
        ("Roofing Sheets", "sheet", "4500.00", "Roofing Suppliers"),
        ("Paint (Emulsion)", "gallon", "15000.00", "Paint Suppliers"),
        ("Tiles (Floor)", "sqm", "8000.00", "Tile Suppliers"),
        ("Electrical Cables", "meter", "500.00", "Electrical Suppliers"),
    ],
    "real_estate": [
        ("Signage Boards", "piece", "50000.00", "Signage Company"),
        ("Marketing Brochures", "pack", "25000.00", "Printing Press"),
        ("Site Fencing", "meter", "3000.00", "Fencing Suppliers"),
        ("Access Gates", "unit", "250000.00", "Gate Manufacturers"),
        ("Street Lighting", "unit", "75000.00", "Lighting Suppliers"),
    ],
    "manufacturing": [
        ("Raw Materials", "kg", "1000.00", "Raw Material Suppliers"),
        ("Packaging Materials", "unit", "500.00", "Packaging Company"),
        ("Lubricants", "liter", "5000.00", "Industrial Supplies"),
        ("Safety Equipment", "piece", "15000.00", "Safety Gear Suppliers"),
        ("Cleaning Supplies", "pack", "3000.00", "Cleaning Suppliers"),
    ],
    "software_development": [
        ("Cloud Hosting (AWS)", "month", "50000.00", "Amazon Web Services"),
        ("Development Tools Licenses", "license", "25000.00", "JetBrains"),
        ("Design Software Subscription", "month", "15000.00", "Adobe"),
        ("API Services", "month", "30000.00", "Various Providers"),
        ("Analytics Tools", "month", "20000.00", "Analytics Vendors"),
    ],
    "other": [
        ("Office Supplies", "pack", "5000.00", "Office Depot"),
        ("Equipment", "unit", "50000.00", "Equipment Suppliers"),
        ("Services", "hour", "10000.00", "Service Providers"),
    ],
}


def get_template(industry: str) -> dict:
    """
    :return: {"line_items": [dict, ...], "materials": [dict, ...]}
    :raises KeyError: unknown industry
    """
    if industry not in INDUSTRY_LABELS:
        raise KeyError(industry)
    return {
        "line_items": [
            {"name": name, "category": category, "description": description}
            for name, category, description in _LINE_ITEMS[industry]
        ],
        "materials": [
            {"name": name, "unit": unit, "current_unit_price": Decimal(price), "supplier": supplier}
            for name, unit, price, supplier in _MATERIALS[industry]
        ],
    }
