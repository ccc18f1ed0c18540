"""
Storage Layer

Typed query methods over the async session. Route handlers talk to the
database only through Storage; status changes go through
food_delivery.workflow instead.

Write methods commit on their own unless noted otherwise.
"""

import logging
import math
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from food_delivery.models import (
    AdminUser,
    AuthSession,
    Category,
    Driver,
    MenuItem,
    Notification,
    Order,
    OrderStatus,
    OrderTracking,
    Restaurant,
    SpecialOffer,
    UiSetting,
    utcnow,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

RESTAURANT_SORTS = ("name", "rating", "deliveryTime", "newest", "distance")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _delivery_minutes(value: Optional[str]) -> int:
    """First number in a '30-45 min' style string, for sorting."""
    digits = ""
    for char in value or "":
        if char.isdigit():
            digits += char
        elif digits:
            break
    return int(digits) if digits else 0


def _rating(value: Optional[str]) -> float:
    try:
        return float(value or 0)
    except ValueError:
        return 0.0


LIKE_ESCAPE = "\\"


def _like(term: str) -> str:
    """Substring pattern with LIKE wildcards in the term matched literally."""
    term = term.strip()
    for char in (LIKE_ESCAPE, "%", "_"):
        term = term.replace(char, LIKE_ESCAPE + char)
    return f"%{term}%"


class Storage:
    """Database access for every resource the API exposes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # GENERIC HELPERS
    # =========================================================================

    async def _add(self, obj):
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def _update(self, obj, values: dict[str, Any]):
        for field, value in values.items():
            setattr(obj, field, value)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def refresh(self, obj):
        """Reload a row changed behind the session's back by a conditional update."""
        await self.session.refresh(obj)
        return obj

    async def commit(self) -> None:
        await self.session.commit()

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def get_categories(self, include_inactive: bool = False) -> list[Category]:
        query = select(Category).order_by(Category.sort_order, Category.name)
        if not include_inactive:
            query = query.where(Category.is_active.is_(True))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_category(self, category_id: str) -> Optional[Category]:
        return await self.session.get(Category, category_id)

    async def create_category(self, values: dict[str, Any]) -> Category:
        return await self._add(Category(**values))

    async def update_category(self, category_id: str, values: dict[str, Any]) -> Optional[Category]:
        category = await self.get_category(category_id)
        if category is None:
            return None
        return await self._update(category, values)

    async def delete_category(self, category_id: str) -> bool:
        """Deactivate a category; restaurants keep their reference."""
        category = await self.get_category(category_id)
        if category is None:
            return False
        await self._update(category, {"is_active": False})
        return True

    # =========================================================================
    # RESTAURANTS
    # =========================================================================

    async def get_restaurants(
        self,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        is_open: Optional[bool] = None,
        is_featured: Optional[bool] = None,
        is_new: Optional[bool] = None,
        sort_by: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        radius_km: Optional[float] = None,
        include_inactive: bool = False,
    ) -> list[tuple[Restaurant, Optional[float]]]:
        """
        List restaurants matching the given filters.

        Returns (restaurant, distance_km) pairs. Distance is only computed
        when both latitude and longitude are given; restaurants without
        coordinates then get None and are dropped by a radius filter.
        """
        query = select(Restaurant)

        if not include_inactive:
            query = query.where(Restaurant.is_active.is_(True))
        if category_id:
            query = query.where(Restaurant.category_id == category_id)
        if search and search.strip():
            pattern = _like(search)
            query = query.where(or_(
                Restaurant.name.ilike(pattern, escape=LIKE_ESCAPE),
                Restaurant.description.ilike(pattern, escape=LIKE_ESCAPE),
                Restaurant.address.ilike(pattern, escape=LIKE_ESCAPE),
            ))
        if is_open is not None:
            query = query.where(Restaurant.is_open.is_(is_open))
        if is_featured is not None:
            query = query.where(Restaurant.is_featured.is_(is_featured))
        if is_new is not None:
            query = query.where(Restaurant.is_new.is_(is_new))

        result = await self.session.execute(query.order_by(Restaurant.name))
        restaurants = result.scalars().all()

        with_location = latitude is not None and longitude is not None
        rows: list[tuple[Restaurant, Optional[float]]] = []
        for restaurant in restaurants:
            distance = None
            if with_location and restaurant.latitude is not None and restaurant.longitude is not None:
                distance = round(
                    haversine_km(latitude, longitude, restaurant.latitude, restaurant.longitude), 2
                )
            if with_location and radius_km is not None:
                if distance is None or distance > radius_km:
                    continue
            rows.append((restaurant, distance))

        if sort_by == "rating":
            rows.sort(key=lambda row: _rating(row[0].rating), reverse=True)
        elif sort_by == "deliveryTime":
            rows.sort(key=lambda row: _delivery_minutes(row[0].delivery_time))
        elif sort_by == "newest":
            rows.sort(key=lambda row: row[0].created_at, reverse=True)
        elif sort_by == "distance" and with_location:
            rows.sort(key=lambda row: (row[1] is None, row[1] or 0.0))

        return rows

    async def get_restaurant(self, restaurant_id: str) -> Optional[Restaurant]:
        return await self.session.get(Restaurant, restaurant_id)

    async def create_restaurant(self, values: dict[str, Any]) -> Restaurant:
        return await self._add(Restaurant(**values))

    async def update_restaurant(self, restaurant_id: str, values: dict[str, Any]) -> Optional[Restaurant]:
        restaurant = await self.get_restaurant(restaurant_id)
        if restaurant is None:
            return None
        return await self._update(restaurant, values)

    async def delete_restaurant(self, restaurant_id: str) -> bool:
        """Deactivate a restaurant; past orders keep their reference."""
        restaurant = await self.get_restaurant(restaurant_id)
        if restaurant is None:
            return False
        await self._update(restaurant, {"is_active": False})
        return True

    # =========================================================================
    # MENU ITEMS
    # =========================================================================

    async def get_menu_items(
        self,
        restaurant_id: Optional[str] = None,
        category: Optional[str] = None,
        available_only: bool = True,
    ) -> list[MenuItem]:
        query = select(MenuItem).order_by(MenuItem.category, MenuItem.name)
        if restaurant_id:
            query = query.where(MenuItem.restaurant_id == restaurant_id)
        if category:
            query = query.where(MenuItem.category == category)
        if available_only:
            query = query.where(MenuItem.is_available.is_(True))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_menu_item(self, item_id: str) -> Optional[MenuItem]:
        return await self.session.get(MenuItem, item_id)

    async def create_menu_item(self, values: dict[str, Any]) -> MenuItem:
        return await self._add(MenuItem(**values))

    async def update_menu_item(self, item_id: str, values: dict[str, Any]) -> Optional[MenuItem]:
        item = await self.get_menu_item(item_id)
        if item is None:
            return None
        return await self._update(item, values)

    async def delete_menu_item(self, item_id: str) -> bool:
        result = await self.session.execute(delete(MenuItem).where(MenuItem.id == item_id))
        await self.session.commit()
        return result.rowcount > 0

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search_restaurants(self, term: str) -> list[Restaurant]:
        pattern = _like(term)
        result = await self.session.execute(
            select(Restaurant)
            .where(Restaurant.is_active.is_(True))
            .where(or_(
                Restaurant.name.ilike(pattern, escape=LIKE_ESCAPE),
                Restaurant.description.ilike(pattern, escape=LIKE_ESCAPE),
                Restaurant.address.ilike(pattern, escape=LIKE_ESCAPE),
            ))
            .order_by(Restaurant.name)
        )
        return list(result.scalars().all())

    async def search_categories(self, term: str) -> list[Category]:
        result = await self.session.execute(
            select(Category)
            .where(Category.is_active.is_(True))
            .where(Category.name.ilike(_like(term), escape=LIKE_ESCAPE))
            .order_by(Category.sort_order, Category.name)
        )
        return list(result.scalars().all())

    async def search_menu_items(self, term: str) -> list[MenuItem]:
        pattern = _like(term)
        result = await self.session.execute(
            select(MenuItem)
            .where(MenuItem.is_available.is_(True))
            .where(or_(
                MenuItem.name.ilike(pattern, escape=LIKE_ESCAPE),
                MenuItem.description.ilike(pattern, escape=LIKE_ESCAPE),
                MenuItem.category.ilike(pattern, escape=LIKE_ESCAPE),
            ))
            .order_by(MenuItem.name)
        )
        return list(result.scalars().all())

    # =========================================================================
    # SPECIAL OFFERS
    # =========================================================================

    async def get_special_offers(self) -> list[SpecialOffer]:
        result = await self.session.execute(
            select(SpecialOffer).order_by(SpecialOffer.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_active_special_offers(self, now: Optional[datetime] = None) -> list[SpecialOffer]:
        """Offers that are switched on and not past their expiry."""
        now = now or utcnow()
        result = await self.session.execute(
            select(SpecialOffer)
            .where(SpecialOffer.is_active.is_(True))
            .where(or_(SpecialOffer.valid_until.is_(None), SpecialOffer.valid_until > now))
            .order_by(SpecialOffer.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_special_offer(self, offer_id: str) -> Optional[SpecialOffer]:
        return await self.session.get(SpecialOffer, offer_id)

    async def create_special_offer(self, values: dict[str, Any]) -> SpecialOffer:
        return await self._add(SpecialOffer(**values))

    async def update_special_offer(self, offer_id: str, values: dict[str, Any]) -> Optional[SpecialOffer]:
        offer = await self.get_special_offer(offer_id)
        if offer is None:
            return None
        return await self._update(offer, values)

    async def delete_special_offer(self, offer_id: str) -> bool:
        result = await self.session.execute(delete(SpecialOffer).where(SpecialOffer.id == offer_id))
        await self.session.commit()
        return result.rowcount > 0

    # =========================================================================
    # UI SETTINGS
    # =========================================================================

    async def get_ui_settings(self) -> list[UiSetting]:
        result = await self.session.execute(
            select(UiSetting)
            .where(UiSetting.is_active.is_(True))
            .order_by(UiSetting.category, UiSetting.key)
        )
        return list(result.scalars().all())

    async def get_ui_setting(self, key: str) -> Optional[UiSetting]:
        result = await self.session.execute(select(UiSetting).where(UiSetting.key == key))
        return result.scalar_one_or_none()

    async def upsert_ui_setting(
        self,
        key: str,
        value: str,
        category: Optional[str] = None,
        description: Optional[str] = None,
    ) -> UiSetting:
        setting = await self.get_ui_setting(key)
        if setting is None:
            return await self._add(UiSetting(
                key=key,
                value=value,
                category=category or "general",
                description=description,
            ))

        values: dict[str, Any] = {"value": value}
        if category is not None:
            values["category"] = category
        if description is not None:
            values["description"] = description
        return await self._update(setting, values)

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def get_order(self, order_id: str) -> Optional[Order]:
        return await self.session.get(Order, order_id)

    async def get_orders(
        self,
        statuses: Optional[Iterable[OrderStatus]] = None,
        driver_id: Optional[str] = None,
        restaurant_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Order]:
        query = select(Order).order_by(Order.created_at.desc())
        if statuses:
            query = query.where(Order.status.in_(list(statuses)))
        if driver_id:
            query = query.where(Order.driver_id == driver_id)
        if restaurant_id:
            query = query.where(Order.restaurant_id == restaurant_id)
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_orders_by_phone(self, phone: str) -> list[Order]:
        result = await self.session.execute(
            select(Order)
            .where(Order.customer_phone == phone)
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_orders_page(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[OrderStatus] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Order], int]:
        """One page of orders, newest first, with the total match count."""
        query = select(Order)
        count_query = select(func.count(Order.id))

        if status is not None:
            query = query.where(Order.status == status)
            count_query = count_query.where(Order.status == status)
        if search and search.strip():
            pattern = _like(search)
            condition = or_(
                Order.order_number.ilike(pattern, escape=LIKE_ESCAPE),
                Order.customer_name.ilike(pattern, escape=LIKE_ESCAPE),
                Order.customer_phone.ilike(pattern, escape=LIKE_ESCAPE),
            )
            query = query.where(condition)
            count_query = count_query.where(condition)

        total_result = await self.session.execute(count_query)
        total = total_result.scalar() or 0

        result = await self.session.execute(
            query.order_by(Order.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_available_orders(self, limit: int = 10) -> list[Order]:
        """Confirmed orders no driver has taken yet."""
        result = await self.session.execute(
            select(Order)
            .where(Order.status == OrderStatus.CONFIRMED)
            .where(Order.driver_id.is_(None))
            .order_by(Order.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update_order(self, order_id: str, values: dict[str, Any]) -> Optional[Order]:
        """Write plain order fields. Never use this for status."""
        order = await self.get_order(order_id)
        if order is None:
            return None
        values = {**values, "updated_at": utcnow()}
        return await self._update(order, values)

    async def assign_driver(
        self,
        order_id: str,
        driver_id: str,
        statuses: Optional[Iterable[OrderStatus]] = None,
        driver_earnings: Optional[float] = None,
    ) -> bool:
        """
        Attach a driver to an order that has none.

        The write only matches while the order is still unassigned (and,
        when given, in one of ``statuses``), so two drivers racing for the
        same order cannot both win. Returns whether this call won.
        """
        values: dict[str, Any] = {"driver_id": driver_id, "updated_at": utcnow()}
        if driver_earnings is not None:
            values["driver_earnings"] = driver_earnings

        query = (
            update(Order)
            .where(Order.id == order_id, Order.driver_id.is_(None))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if statuses:
            query = query.where(Order.status.in_(list(statuses)))

        result = await self.session.execute(query)
        await self.session.commit()
        return result.rowcount == 1

    async def get_order_tracking(self, order_id: str) -> list[OrderTracking]:
        """Tracking entries of an order, newest first."""
        result = await self.session.execute(
            select(OrderTracking)
            .where(OrderTracking.order_id == order_id)
            .order_by(OrderTracking.created_at.desc())
        )
        return list(result.scalars().all())

    # =========================================================================
    # DRIVERS
    # =========================================================================

    async def get_drivers(self, include_inactive: bool = True) -> list[Driver]:
        query = select(Driver).order_by(Driver.name)
        if not include_inactive:
            query = query.where(Driver.is_active.is_(True))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_driver(self, driver_id: str) -> Optional[Driver]:
        return await self.session.get(Driver, driver_id)

    async def get_driver_by_phone(self, phone: str) -> Optional[Driver]:
        result = await self.session.execute(select(Driver).where(Driver.phone == phone))
        return result.scalar_one_or_none()

    async def create_driver(self, values: dict[str, Any]) -> Driver:
        return await self._add(Driver(**values))

    async def update_driver(self, driver_id: str, values: dict[str, Any]) -> Optional[Driver]:
        driver = await self.get_driver(driver_id)
        if driver is None:
            return None
        return await self._update(driver, values)

    async def delete_driver(self, driver_id: str) -> bool:
        """Deactivate a driver and end their sessions; their orders stay linked."""
        driver = await self.get_driver(driver_id)
        if driver is None:
            return False
        await self.session.execute(delete(AuthSession).where(AuthSession.subject_id == driver_id))
        await self._update(driver, {"is_active": False, "is_available": False})
        return True

    # =========================================================================
    # ADMINS & SESSIONS
    # =========================================================================

    async def get_admin(self, admin_id: str) -> Optional[AdminUser]:
        return await self.session.get(AdminUser, admin_id)

    async def get_admin_by_email(self, email: str) -> Optional[AdminUser]:
        result = await self.session.execute(
            select(AdminUser).where(func.lower(AdminUser.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_admin_by_login(self, identifier: str) -> Optional[AdminUser]:
        """Look an admin up by email or username."""
        identifier = identifier.strip()
        result = await self.session.execute(
            select(AdminUser).where(or_(
                func.lower(AdminUser.email) == identifier.lower(),
                AdminUser.username == identifier,
            ))
        )
        return result.scalars().first()

    async def create_admin(self, values: dict[str, Any]) -> AdminUser:
        return await self._add(AdminUser(**values))

    async def get_admins(self) -> list[AdminUser]:
        result = await self.session.execute(select(AdminUser).order_by(AdminUser.created_at.desc()))
        return list(result.scalars().all())

    async def update_admin(self, admin_id: str, values: dict[str, Any]) -> Optional[AdminUser]:
        admin = await self.get_admin(admin_id)
        if admin is None:
            return None
        return await self._update(admin, values)

    async def delete_admin(self, admin_id: str) -> bool:
        """Remove an admin account together with its sessions."""
        admin = await self.get_admin(admin_id)
        if admin is None:
            return False
        await self.session.execute(delete(AuthSession).where(AuthSession.subject_id == admin_id))
        await self.session.delete(admin)
        await self.session.commit()
        return True

    async def end_sessions(self, subject_id: str) -> None:
        await self.session.execute(delete(AuthSession).where(AuthSession.subject_id == subject_id))
        await self.session.commit()

    async def create_session(self, values: dict[str, Any]) -> AuthSession:
        return await self._add(AuthSession(**values))

    async def get_session(self, token: str) -> Optional[AuthSession]:
        result = await self.session.execute(select(AuthSession).where(AuthSession.token == token))
        return result.scalar_one_or_none()

    async def delete_session(self, token: str) -> bool:
        result = await self.session.execute(delete(AuthSession).where(AuthSession.token == token))
        await self.session.commit()
        return result.rowcount > 0

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    async def create_notification(
        self,
        type: str,
        title: str,
        message: str,
        recipient_type: str,
        recipient_id: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            type=type,
            title=title,
            message=message,
            recipient_type=recipient_type,
            recipient_id=recipient_id,
            order_id=order_id,
        )
        return await self._add(notification)

    async def get_notifications(
        self,
        recipient_type: Optional[str] = None,
        recipient_id: Optional[str] = None,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        query = select(Notification).order_by(Notification.created_at.desc())
        if recipient_type:
            query = query.where(Notification.recipient_type == recipient_type)
        if recipient_id:
            query = query.where(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def mark_notification_read(self, notification_id: str) -> Optional[Notification]:
        notification = await self.session.get(Notification, notification_id)
        if notification is None:
            return None
        return await self._update(notification, {"is_read": True})

    # =========================================================================
    # STATISTICS
    # =========================================================================

    async def _count(self, model, *conditions) -> int:
        result = await self.session.execute(select(func.count(model.id)).where(*conditions))
        return result.scalar() or 0

    async def _sum_total(self, *conditions) -> float:
        result = await self.session.execute(
            select(func.sum(Order.total_amount)).where(*conditions)
        )
        return round(result.scalar() or 0.0, 2)

    async def get_dashboard_stats(self, day_start: datetime) -> dict[str, Any]:
        """Aggregate counts and revenue for the admin dashboard."""
        delivered = Order.status == OrderStatus.DELIVERED
        today = Order.created_at >= day_start

        return {
            "total_restaurants": await self._count(Restaurant, Restaurant.is_active.is_(True)),
            "total_orders": await self._count(Order),
            "total_drivers": await self._count(Driver),
            "today_orders": await self._count(Order, today),
            "pending_orders": await self._count(Order, Order.status == OrderStatus.PENDING),
            "active_drivers": await self._count(Driver, Driver.is_active.is_(True)),
            "available_drivers": await self._count(
                Driver, Driver.is_active.is_(True), Driver.is_available.is_(True)
            ),
            "total_revenue": await self._sum_total(delivered),
            "today_revenue": await self._sum_total(delivered, today),
        }

    async def get_driver_stats(
        self,
        driver_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """Order counts and earnings of one driver within an optional window."""
        conditions = [Order.driver_id == driver_id]
        if start is not None:
            conditions.append(Order.created_at >= start)
        if end is not None:
            conditions.append(Order.created_at <= end)

        result = await self.session.execute(
            select(Order.status, func.count(Order.id), func.sum(Order.driver_earnings))
            .where(*conditions)
            .group_by(Order.status)
        )

        total_orders = 0
        completed = 0
        cancelled = 0
        earnings = 0.0
        for status, count, earned in result.all():
            total_orders += count
            if status == OrderStatus.DELIVERED:
                completed = count
                earnings = earned or 0.0
            elif status == OrderStatus.CANCELLED:
                cancelled = count

        return {
            "total_orders": total_orders,
            "completed_orders": completed,
            "cancelled_orders": cancelled,
            "active_orders": total_orders - completed - cancelled,
            "total_earnings": round(earnings, 2),
            "success_rate": round(completed / total_orders * 100) if total_orders else 0,
        }
