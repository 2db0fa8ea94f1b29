from fastapi import APIRouter, Depends
from backend.api import version_prefix
from backend.auth.dependencies import require_admin
from backend.auth.routes import auth_router
from backend.catalogues.routes import catalogues_admin_router, catalogues_router
from backend.categories.routes import categories_admin_router, categories_router
from backend.common.routes import home_router
from backend.coupons.routes import coupons_admin_router, coupons_router
from backend.newsletter.routes import newsletter_router
from backend.notifications.routes import notifications_router
from backend.orders.routes import orders_admin_router, orders_router
from backend.payments.routes import payments_admin_router, payments_router
from backend.payments.webhooks import webhooks_router
from backend.products.routes import filters_router, prods_admin_router, prods_public_router
from backend.reviews.routes import product_reviews_router, reviews_admin_router, reviews_router
from backend.shipping.routes import shipping_admin_router, shipping_router
from backend.user.routes import user_router
from backend.wishlist.routes import wishlist_router


public_routers = APIRouter(prefix=version_prefix)

public_routers.include_router(home_router, tags=["home"])
public_routers.include_router(auth_router, prefix="/auth", tags=["auth"])
public_routers.include_router(user_router, prefix="/user", tags=["user"])
public_routers.include_router(prods_public_router, prefix="/products", tags=["products-public"])
public_routers.include_router(product_reviews_router, prefix="/products", tags=["reviews"])
public_routers.include_router(filters_router, prefix="/filters", tags=["products-public"])
public_routers.include_router(categories_router, prefix="/categories", tags=["categories"])
public_routers.include_router(catalogues_router, prefix="/catalogues", tags=["catalogues"])
public_routers.include_router(newsletter_router, prefix="/newsletter", tags=["newsletter"])
public_routers.include_router(orders_router, prefix="/orders", tags=["orders"])
public_routers.include_router(payments_router, prefix="/payments", tags=["payments"])
public_routers.include_router(shipping_router, prefix="/shipping", tags=["shipping"])
public_routers.include_router(coupons_router, prefix="/coupons", tags=["coupons"])
public_routers.include_router(notifications_router, prefix="/notifications", tags=["notifications"])
public_routers.include_router(wishlist_router, prefix="/wishlist", tags=["wishlist"])
public_routers.include_router(reviews_router, prefix="/reviews", tags=["reviews"])
public_routers.include_router(webhooks_router, prefix="/webhooks", tags=["webhooks"])

#--------------------------------------------------------------------------------------------------------

admin_routers = APIRouter(prefix=f"{version_prefix}/admin", dependencies=[Depends(require_admin)])

admin_routers.include_router(prods_admin_router, prefix="/products", tags=["products-admin"])
admin_routers.include_router(categories_admin_router, prefix="/categories", tags=["categories-admin"])
admin_routers.include_router(catalogues_admin_router, prefix="/catalogues", tags=["catalogues-admin"])
admin_routers.include_router(orders_admin_router, prefix="/orders", tags=["orders-admin"])
admin_routers.include_router(payments_admin_router, prefix="/payments", tags=["payments-admin"])
admin_routers.include_router(coupons_admin_router, prefix="/coupons", tags=["coupons-admin"])
admin_routers.include_router(reviews_admin_router, prefix="/reviews", tags=["reviews-admin"])
admin_routers.include_router(shipping_admin_router, prefix="/shipping", tags=["shipping-admin"])
