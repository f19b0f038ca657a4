import json


# shop ping: domain / version / token check
SHOP_PING = """
{
  shop {
    name
    myshopifyDomain
    plan { displayName }
  }
}
""".strip()


# variants by SKU search; sortKey ID keeps the order stable between calls
VARIANTS_BY_SKUS = """
query VariantsBySkus($query: String!, $first: Int!, $after: String) {
  productVariants(first: $first, after: $after, query: $query, sortKey: ID) {
    edges {
      node {
        id
        sku
        title
        position
        price
        inventoryQuantity
        inventoryItem { id tracked }
        product { id title }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
""".strip()


PRIMARY_LOCATION = """
query PrimaryLocation {
  locations(first: 1) {
    edges {
      node { id name isActive }
    }
  }
}
""".strip()


INVENTORY_SET_QUANTITIES = """
mutation inventorySetQuantities($input: InventorySetQuantitiesInput!) {
  inventorySetQuantities(input: $input) {
    inventoryAdjustmentGroup { id reason createdAt }
    userErrors { field message code }
  }
}
""".strip()


INVENTORY_ADJUST_QUANTITIES = """
mutation inventoryAdjustQuantities($input: InventoryAdjustQuantitiesInput!) {
  inventoryAdjustQuantities(input: $input) {
    inventoryAdjustmentGroup {
      createdAt
      reason
      changes { name delta }
    }
    userErrors { field message }
  }
}
""".strip()


PRODUCT_VARIANTS_BULK_UPDATE = """
mutation productVariantsBulkUpdate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkUpdate(productId: $productId, variants: $variants) {
    productVariants { id price sku updatedAt }
    userErrors { field message }
  }
}
""".strip()


def escape_search_value(value: str) -> str:
    """Escape a value for the Shopify search syntax and wrap it in double quotes."""
    inner = json.dumps(value or "")[1:-1]
    return f'"{inner}"'


# sku:"A" OR sku:"B" ... (quoted so the search engine does not tokenize the SKU)
def build_sku_search(skus: list[str]) -> str:
    return " OR ".join(f"sku:{escape_search_value(s)}" for s in skus)
