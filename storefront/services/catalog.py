"""
Catalog Queries
GraphQL documents and response translation for the catalog HTTP routes.

Each fetch_* function sends one query and decodes Shopify's edge/node
envelopes into the flat shapes returned by the API. Results are plain
JSON-serializable dicts so they can be cached as-is.
"""

from typing import Any, Dict, List, Optional

from storefront.errors import NotFoundError, UpstreamError

ADMIN_PRODUCTS_QUERY = """
  query AdminProducts($first: Int!, $after: String) {
    products(first: $first, after: $after) {
      pageInfo {
        hasNextPage
        endCursor
      }
      edges {
        node {
          id
          title
          description
          descriptionHtml
          handle
          priceRangeV2 {
            minVariantPrice {
              amount
              currencyCode
            }
          }
          media(first: 50) {
            edges {
              node {
                __typename
                ... on MediaImage {
                  image {
                    url
                    altText
                  }
                }
              }
            }
          }
          variants(first: 10) {
            edges {
              node {
                id
                title
                price
                media(first: 1) {
                  edges {
                    node {
                      __typename
                      ... on MediaImage {
                        image {
                          url
                          altText
                        }
                      }
                    }
                  }
                }
                inventoryQuantity
                selectedOptions {
                  name
                  value
                }
              }
            }
          }
          options {
            name
            values
          }
        }
      }
    }
  }
"""

PRODUCT_AVAILABLE_INVENTORY_QUERY = """
  query ProductAvailableInventory($productId: ID!) {
    product(id: $productId) {
      id
      title
      variants(first: 50) {
        edges {
          node {
            id
            title
            inventoryItem {
              id
              inventoryLevels(first: 10) {
                edges {
                  node {
                    id
                    location {
                      id
                      name
                    }
                    quantities(names: ["available"]) {
                      name
                      quantity
                    }
                  }
                }
              }
            }
          }
        }
      }
    }
  }
"""

ADMIN_COLLECTIONS_QUERY = """
  query AdminCollections($first: Int!, $after: String) {
    collections(first: $first, after: $after) {
      pageInfo {
        hasNextPage
        endCursor
      }
      edges {
        node {
          id
          title
          handle
          description
          descriptionHtml
          image {
            url
            altText
          }
        }
      }
    }
  }
"""

COLLECTION_PRODUCTS_QUERY = """
  query CollectionProducts($handle: String!, $first: Int!, $after: String) {
    collectionByHandle(handle: $handle) {
      id
      title
      handle
      description
      descriptionHtml
      image {
        url
        altText
      }
      products(first: $first, after: $after) {
        pageInfo {
          hasNextPage
          endCursor
        }
        edges {
          node {
            id
            title
            description
            descriptionHtml
            handle
            priceRangeV2 {
              minVariantPrice {
                amount
                currencyCode
              }
            }
            featuredImage {
              url
              altText
            }
          }
        }
      }
    }
  }
"""


def images_from_media(edges: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep MediaImage nodes that carry an image; drop video/3D media."""
    return [
        {"url": edge["node"]["image"]["url"], "altText": edge["node"]["image"].get("altText")}
        for edge in edges
        if edge["node"].get("__typename") == "MediaImage" and edge["node"].get("image")
    ]


def _image_or_none(image: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not image:
        return None
    return {"url": image["url"], "altText": image.get("altText")}


def _collection(node: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": node["id"],
        "title": node["title"],
        "handle": node["handle"],
        "description": node["description"],
        "descriptionHtml": node["descriptionHtml"],
        "image": _image_or_none(node.get("image")),
    }


def _product(node: Dict[str, Any]) -> Dict[str, Any]:
    variants = []
    for variant_edge in node["variants"]["edges"]:
        variant = variant_edge["node"]
        variant_images = images_from_media(variant["media"]["edges"])
        variants.append({
            "id": variant["id"],
            "title": variant["title"],
            "price": variant["price"],
            "image": variant_images[0] if variant_images else None,
            "inventoryQuantity": variant["inventoryQuantity"],
            "selectedOptions": variant["selectedOptions"],
        })

    return {
        "id": node["id"],
        "title": node["title"],
        "description": node["description"],
        "descriptionHtml": node["descriptionHtml"],
        "handle": node["handle"],
        "minPrice": node["priceRangeV2"]["minVariantPrice"],
        "images": images_from_media(node["media"]["edges"]),
        "variants": variants,
        "options": node["options"],
    }


def _inventory_level(node: Dict[str, Any]) -> Dict[str, Any]:
    available = next(
        (q["quantity"] for q in node.get("quantities") or [] if q["name"] == "available"),
        0
    )
    return {
        "id": node["id"],
        "locationName": (node.get("location") or {}).get("name") or "Unknown",
        "available": available,
    }


async def fetch_products(shopify, first: int, after: Optional[str] = None) -> Dict[str, Any]:
    """One page of products with images, variants and options."""
    response = await shopify.request(ADMIN_PRODUCTS_QUERY, {"first": first, "after": after})

    products_data = (response.get("data") or {}).get("products")
    if not products_data:
        raise UpstreamError("Failed to fetch products")

    return {
        "products": [_product(edge["node"]) for edge in products_data["edges"]],
        "pageInfo": products_data["pageInfo"],
    }


async def fetch_product_inventory(shopify, product_id: str) -> Dict[str, Any]:
    """
    Available quantity per variant and location for one product.

    Raises:
        NotFoundError: If the product does not exist
    """
    response = await shopify.request(PRODUCT_AVAILABLE_INVENTORY_QUERY, {"productId": product_id})

    product = (response.get("data") or {}).get("product")
    if not product:
        raise NotFoundError("Product not found")

    variants = []
    for variant_edge in product["variants"]["edges"]:
        variant = variant_edge["node"]
        inventory_item = variant.get("inventoryItem") or {}
        level_edges = (inventory_item.get("inventoryLevels") or {}).get("edges", [])
        variants.append({
            "id": variant["id"],
            "title": variant["title"],
            "inventoryLevels": [_inventory_level(edge["node"]) for edge in level_edges],
        })

    return {"id": product["id"], "title": product["title"], "variants": variants}


async def fetch_collections(shopify, first: int, after: Optional[str] = None) -> Dict[str, Any]:
    """One page of collections."""
    response = await shopify.request(ADMIN_COLLECTIONS_QUERY, {"first": first, "after": after})

    collections_data = (response.get("data") or {}).get("collections")
    if not collections_data:
        raise UpstreamError("Failed to fetch collections")

    return {
        "collections": [_collection(edge["node"]) for edge in collections_data["edges"]],
        "pageInfo": collections_data["pageInfo"],
    }


async def fetch_collection_products(
    shopify,
    handle: str,
    first: int,
    after: Optional[str] = None
) -> Dict[str, Any]:
    """
    A collection and one page of its products.

    Raises:
        NotFoundError: If no collection has this handle
    """
    response = await shopify.request(
        COLLECTION_PRODUCTS_QUERY,
        {"handle": handle, "first": first, "after": after}
    )

    collection = (response.get("data") or {}).get("collectionByHandle")
    if not collection:
        raise NotFoundError("Collection not found")

    products = [
        {
            "id": edge["node"]["id"],
            "title": edge["node"]["title"],
            "description": edge["node"]["description"],
            "descriptionHtml": edge["node"]["descriptionHtml"],
            "handle": edge["node"]["handle"],
            "minPrice": edge["node"]["priceRangeV2"]["minVariantPrice"],
            "featuredImage": _image_or_none(edge["node"].get("featuredImage")),
        }
        for edge in collection["products"]["edges"]
    ]

    return {
        "collection": _collection(collection),
        "products": products,
        "pageInfo": collection["products"]["pageInfo"],
    }
