"""
Fixed search configuration for each product-page element kind.

Selector lists are ordered from generic structural matches to platform
specific class names; the locator walks them in this order, so earlier
entries win ties.
"""

from __future__ import annotations

import re

from storeprobe.core.models import AttributePattern, ElementKind, ElementSpec


TITLE_SPEC = ElementSpec(
    kind=ElementKind.TITLE,
    selectors=(
        "h1", "h2", "h3",
        '[class*="title" i]', '[class*="name" i]', '[class*="product" i]',
        '[data-testid*="title" i]', '[data-testid*="name" i]',
        '[data-testid*="product" i]', '[id*="title" i]', '[id*="name" i]',
        ".product-title", ".product-name", ".item-title", ".item-name",
        ".pdp-title", ".entry-title", ".main-title", ".page-title",
        '[itemprop="name"]', '[role="heading"]',
    ),
    attributes=(
        AttributePattern("data-testid", "title"),
        AttributePattern("data-testid", "name"),
        AttributePattern("data-testid", "product"),
        AttributePattern("itemprop", "name"),
    ),
)

PRICE_SPEC = ElementSpec(
    kind=ElementKind.PRICE,
    selectors=(
        '[class*="price" i]:not([class*="compare" i]):not([class*="was" i]):not([class*="original" i])',
        '[data-testid*="price" i]', "[data-price]", "[data-product-price]",
        ".money", ".currency", ".cost", ".amount", ".value",
        '[id*="price" i]', '[itemprop="price"]', '[itemprop="offers"] [itemprop="price"]',
        ".current-price", ".sale-price", ".selling-price", ".final-price",
        ".product-price", ".item-price", ".pdp-price",
    ),
    content_patterns=(
        re.compile(r"\$\s*[\d,]+\.?\d*", re.IGNORECASE),
        re.compile(r"₹\s*[\d,]+\.?\d*", re.IGNORECASE),
        re.compile(r"€\s*[\d,]+\.?\d*", re.IGNORECASE),
        re.compile(r"£\s*[\d,]+\.?\d*", re.IGNORECASE),
        re.compile(r"USD\s*[\d,]+\.?\d*", re.IGNORECASE),
        re.compile(r"INR\s*[\d,]+\.?\d*", re.IGNORECASE),
        re.compile(r"\b\d+\.\d{2}\b"),
        re.compile(r"\b\d{1,3}(,\d{3})*(\.\d{2})?\b"),
    ),
    attributes=(
        AttributePattern("data-testid", "price"),
        AttributePattern("data-price", ""),
        AttributePattern("itemprop", "price"),
    ),
)

ADD_TO_CART_SPEC = ElementSpec(
    kind=ElementKind.ADD_TO_CART,
    selectors=(
        'button[type="submit"]', 'input[type="submit"]',
        '[class*="add" i][class*="cart" i]', '[class*="cart" i][class*="btn" i]',
        '[class*="buy" i]', '[class*="purchase" i]', '[class*="shop" i]',
        "button", 'input[type="button"]', '[role="button"]',
        '[data-testid*="add" i]', '[data-testid*="cart" i]', '[data-testid*="buy" i]',
    ),
    text_patterns=(
        "Add to Cart", "Add to Bag", "Buy Now", "Purchase", "Add to Basket",
        "Shop Now", "Order Now", "Add", "Buy", "Cart",
    ),
    attributes=(
        AttributePattern("data-testid", "add"),
        AttributePattern("data-testid", "cart"),
        AttributePattern("data-action", "add-to-cart"),
    ),
)

DESCRIPTION_SPEC = ElementSpec(
    kind=ElementKind.DESCRIPTION,
    selectors=(
        '[class*="description" i]', '[class*="details" i]', '[class*="summary" i]',
        '[data-testid*="description" i]', '[data-testid*="details" i]',
        '[id*="description" i]', '[id*="details" i]',
        ".product-description", ".item-description", ".product-details",
        ".product-summary", ".product-info", ".description",
        '[itemprop="description"]', ".desc", ".details", ".summary",
    ),
    attributes=(
        AttributePattern("data-testid", "description"),
        AttributePattern("itemprop", "description"),
    ),
)

VARIANTS_SPEC = ElementSpec(
    kind=ElementKind.VARIANTS,
    selectors=(
        '[class*="variant" i]', '[class*="option" i]', '[class*="choice" i]',
        '[class*="size" i]', '[class*="color" i]', '[class*="style" i]',
        "select", 'input[type="radio"]', 'input[type="checkbox"]',
        '[data-testid*="variant" i]', '[data-testid*="option" i]',
        ".swatch", ".picker", ".selector",
    ),
    attributes=(
        AttributePattern("data-testid", "variant"),
        AttributePattern("name", "variant"),
        AttributePattern("name", "option"),
    ),
)

AVAILABILITY_SPEC = ElementSpec(
    kind=ElementKind.AVAILABILITY,
    selectors=(
        '[class*="availability" i]', '[class*="stock" i]', '[class*="inventory" i]',
        '[data-testid*="stock" i]', '[data-testid*="availability" i]',
        ".in-stock", ".out-of-stock", ".stock-status",
    ),
    text_patterns=(
        "In Stock", "Out of Stock", "Available", "Unavailable",
        "In stock", "out of stock", "available", "unavailable",
    ),
    content_patterns=(
        re.compile(r"in\s*stock", re.IGNORECASE),
        re.compile(r"out\s*of\s*stock", re.IGNORECASE),
        re.compile(r"available", re.IGNORECASE),
        re.compile(r"unavailable", re.IGNORECASE),
        re.compile(r"\d+\s*in\s*stock", re.IGNORECASE),
        re.compile(r"\d+\s*left", re.IGNORECASE),
        re.compile(r"\d+\s*remaining", re.IGNORECASE),
    ),
    attributes=(
        AttributePattern("data-testid", "stock"),
        AttributePattern("data-testid", "availability"),
    ),
)

ELEMENT_SPECS: dict[ElementKind, ElementSpec] = {
    spec.kind: spec
    for spec in (
        TITLE_SPEC,
        PRICE_SPEC,
        ADD_TO_CART_SPEC,
        DESCRIPTION_SPEC,
        VARIANTS_SPEC,
        AVAILABILITY_SPEC,
    )
}

# Containers whose interactive children are counted as variant options.
VARIANT_CONTAINER_SELECTOR = (
    '[class*="variant" i], [class*="option" i], .product-options, .product-variants'
)
VARIANT_OPTION_SELECTOR = 'button, input, select, .swatch, [role="button"]'
