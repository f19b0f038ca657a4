from app.integrations.shopify.shopify_client import ShopifyClient

if __name__ == "__main__":
    cli = ShopifyClient()
    data = cli.ping()
    print(data)
    print("first location:", cli.first_location())


# run
# export $(grep -v '^#' .env | xargs)
# PYTHONPATH=backend python scripts/ping_shopify.py



# shop.name / myshopifyDomain / plan.displayName in the output means domain, version and token are OK;
# the first location is the one the sync writes to unless SHOPIFY_LOCATION_ID is set
