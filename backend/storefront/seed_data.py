# Overview: Sample cosmetics catalog loaded by `flask catalog seed`.

SAMPLE_PRODUCTS = [
    {
        "sku": "GL-HS-001",
        "name": "Hydrating Face Serum",
        "description": "A lightweight, fast-absorbing serum that delivers intense hydration to all skin types. "
                       "Formulated with hyaluronic acid and vitamin B5 to plump and smooth the skin.",
        "price_cents": 2999,
        "original_price_cents": 3999,
        "category": "skincare",
        "subcategory": "serums",
        "brand": "GlowLab",
        "inventory_quantity": 50,
        "is_featured": True,
        "specifications": {
            "weight": {"value": 30, "unit": "ml"},
            "dimensions": {"length": None, "width": None, "height": None, "unit": "cm"},
            "ingredients": ["Aqua", "Sodium Hyaluronate", "Panthenol", "Glycerin"],
            "skin_type": ["all"],
            "concerns": ["dryness"],
        },
        "meta_title": "Hydrating Face Serum with Hyaluronic Acid",
        "meta_description": "Lightweight hydrating serum with hyaluronic acid and vitamin B5 for plump, smooth skin.",
        "rating_average": 4.6,
        "rating_count": 128,
        "tags": ["hydrating", "serum", "hyaluronic-acid"],
        "images": [{
            "url": "https://images.unsplash.com/photo-1556228578-8c89e6adf883?w=400&h=400&fit=crop",
            "alt": "Hydrating Face Serum",
            "is_primary": True,
        }],
    },
    {
        "sku": "RS-VC-002",
        "name": "Vitamin C Brightening Cream",
        "description": "A rich, nourishing cream infused with vitamin C to brighten and even skin tone.",
        "price_cents": 3499,
        "category": "skincare",
        "subcategory": "moisturizers",
        "brand": "RadiantSkin",
        "inventory_quantity": 30,
        "specifications": {
            "weight": {"value": 50, "unit": "ml"},
            "dimensions": {"length": None, "width": None, "height": None, "unit": "cm"},
            "ingredients": ["Aqua", "Ascorbic Acid", "Shea Butter", "Tocopherol"],
            "skin_type": ["normal", "dry", "combination"],
            "concerns": ["pigmentation", "aging"],
        },
        "rating_average": 4.3,
        "rating_count": 57,
        "tags": ["vitamin-c", "brightening", "moisturizer"],
        "images": [{
            "url": "https://images.unsplash.com/photo-1570194065650-d99fb4bedf0a?w=400&h=400&fit=crop",
            "alt": "Vitamin C Brightening Cream",
            "is_primary": True,
        }],
    },
    {
        "sku": "PS-CO-003",
        "name": "Gentle Cleansing Oil",
        "description": "A cleansing oil that removes makeup and impurities while nourishing the skin.",
        "price_cents": 2499,
        "category": "skincare",
        "subcategory": "cleansers",
        "brand": "PureSkin",
        "inventory_quantity": 25,
        "tags": ["cleansing", "oil", "gentle", "makeup-remover"],
        "images": [{
            "url": "https://images.unsplash.com/photo-1556228453-efd6c1ff04f6?w=400&h=400&fit=crop",
            "alt": "Gentle Cleansing Oil",
            "is_primary": True,
        }],
    },
    {
        "sku": "CP-MLL-004",
        "name": "Matte Liquid Lipstick",
        "description": "Long-lasting matte liquid lipstick with intense color payoff that doesn't dry out lips.",
        "price_cents": 1899,
        "original_price_cents": 2299,
        "category": "makeup",
        "subcategory": "lips",
        "brand": "ColorPop",
        "inventory_quantity": 40,
        "is_on_sale": True,
        "tags": ["lipstick", "matte", "long-lasting"],
        "images": [{
            "url": "https://images.unsplash.com/photo-1586495777744-4413f21062fa?w=400&h=400&fit=crop",
            "alt": "Matte Liquid Lipstick",
            "is_primary": True,
        }],
    },
    {
        "sku": "HL-NHM-005",
        "name": "Nourishing Hair Mask",
        "description": "Intensive treatment mask for dry and damaged hair, enriched with natural oils and proteins.",
        "price_cents": 2799,
        "category": "haircare",
        "subcategory": "treatments",
        "brand": "HairLux",
        "inventory_quantity": 20,
        "tags": ["hair-mask", "nourishing", "treatment"],
        "images": [{
            "url": "https://images.unsplash.com/photo-1571019613454-1cb2f99b2d8b?w=400&h=400&fit=crop",
            "alt": "Nourishing Hair Mask",
            "is_primary": True,
        }],
    },
    {
        "sku": "FE-RBM-006",
        "name": "Refreshing Body Mist",
        "description": "Light and refreshing body mist with a delicate floral scent.",
        "price_cents": 1599,
        "category": "fragrance",
        "subcategory": "body-mist",
        "brand": "FloralEssence",
        "inventory_quantity": 35,
        "tags": ["body-mist", "floral", "refreshing"],
        "images": [{
            "url": "https://images.unsplash.com/photo-1541643600914-78b084683601?w=400&h=400&fit=crop",
            "alt": "Refreshing Body Mist",
            "is_primary": True,
        }],
    },
    {
        "sku": "PB-MBS-007",
        "name": "Luxury Makeup Brush Set",
        "description": "Professional makeup brush set with synthetic bristles for foundation, powder and eyeshadow.",
        "price_cents": 4599,
        "original_price_cents": 5999,
        "category": "tools",
        "subcategory": "brushes",
        "brand": "ProBeauty",
        "inventory_quantity": 15,
        "is_on_sale": True,
        "tags": ["brushes", "makeup", "professional"],
        "images": [],
    },
    {
        "sku": "NP-OFC-008",
        "name": "Organic Face Cleanser",
        "description": "Gentle organic face cleanser that removes impurities and keeps the moisture barrier intact.",
        "price_cents": 2299,
        "category": "skincare",
        "subcategory": "cleansers",
        "brand": "NaturePure",
        "inventory_quantity": 0,
        "is_featured": True,
        "tags": ["organic", "gentle", "cleanser"],
        "images": [],
    },
]
