"""
Branch quality-check submissions, manager likes and feedback, and the
dashboard reports built on them.

A like or a piece of feedback is the primary write. The notification that
follows it is best effort: if it cannot be stored the write still stands.

There is no branch register; the branches a report covers are those named in
staff accounts' ``branch_slugs`` or in past submissions, minus the central
kitchen.
"""
import logging
from collections import Counter
from datetime import datetime, time, timedelta
from typing import Optional

import pytz
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.config import get_settings
from catering_ops.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from catering_ops.core.naming import is_central_kitchen
from catering_ops.core.reporting import business_today
from catering_ops.db.documents import utc_now
from catering_ops.models.odoo import OdooSale
from catering_ops.models.quality import (
    LIKE_TAGS,
    MAX_LIKE_NOTE_LENGTH,
    QualityCheck,
    QualityFeedback,
    QualityLike,
)
from catering_ops.models.user import User
from catering_ops.services.notifications import NotificationService
from catering_ops.services.quality_fields import QualityFieldService

logger = logging.getLogger(__name__)

LIKE_NOTIFICATION_DAYS = 14
MEAL_SERVICES = ("breakfast", "lunch", "dinner")
SCORE_RANGE = range(1, 6)

# Roles that may submit for any branch, not only those in their branch_slugs
ALL_BRANCH_ROLES = (roles.ADMIN, roles.OPERATIONS_LEAD, roles.REGIONAL_MANAGER)
# Roles whose dashboard summary covers every branch
SUMMARY_ALL_ROLES = (roles.ADMIN, roles.OPERATIONS_LEAD)

SUMMARY_PERIOD_DAYS = {"today": 1, "week": 7, "month": 30}
# Breakfast and lunch are expected from every branch every day
EXPECTED_DAILY_CHECKS = 2
LOW_SCORE = 2
RECENT_SUBMISSIONS = 10
LOW_SCORE_SUBMISSIONS = 5
TOP_PERFORMERS = 10
TOP_TAGS = 5

# Finished food categories offered in the product picker, in display order
FOOD_CATEGORIES = (
    "Breakfast", "Beverages", "Hot Meals", "Sandwiches", "Pizza", "Desserts", "Salads",
    "Appetizers", "Burgers", "Mezza", "Subscriptions", "Special Events", "OBB", "Soups",
)
MIN_SEARCH_LENGTH = 2
CATEGORY_PREVIEW = 5


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def branch_name(slug: Optional[str]) -> str:
    """Display name for a branch slug: "al-quoz" -> "Al Quoz"."""
    return (slug or "").replace("-", " ").replace("_", " ").title()


def check_to_dict(check: QualityCheck, like_count: int = 0) -> dict:
    return {
        "id": check.id,
        "branch_slug": check.branch_slug,
        "branch_name": branch_name(check.branch_slug),
        "submitted_by": check.submitted_by,
        "submitter_name": check.submitter.full_name if check.submitter else None,
        "submission_date": _iso(check.submission_date),
        "meal_service": check.meal_service,
        "product_name": check.product_name,
        "section": check.section,
        "taste_score": check.taste_score,
        "appearance_score": check.appearance_score,
        "portion_qty_gm": float(check.portion_qty_gm) if check.portion_qty_gm is not None else None,
        "temp_celsius": float(check.temp_celsius) if check.temp_celsius is not None else None,
        "remarks": check.remarks,
        "custom_fields": check.custom_fields or {},
        "like_count": like_count,
    }


def like_to_dict(like: QualityLike) -> dict:
    return {
        "id": like.id,
        "quality_check_id": like.quality_check_id,
        "given_by": like.given_by,
        "given_by_name": like.giver.full_name if like.giver else None,
        "given_by_role": like.giver.role if like.giver else None,
        "note": like.note,
        "tags": like.tags or [],
        "created_at": _iso(like.created_at),
    }


def feedback_to_dict(feedback: QualityFeedback) -> dict:
    check = feedback.quality_check
    submitter = check.submitter if check else None
    return {
        "id": feedback.id,
        "quality_check_id": feedback.quality_check_id,
        "feedback_text": feedback.feedback_text,
        "feedback_by": feedback.feedback_by,
        "feedback_by_name": feedback.author.full_name if feedback.author else None,
        "is_read": feedback.is_read,
        "read_at": _iso(feedback.read_at),
        "created_at": _iso(feedback.created_at),
        "product_name": check.product_name if check else None,
        "section": check.section if check else None,
        "branch_slug": check.branch_slug if check else None,
        "branch_name": branch_name(check.branch_slug) if check else None,
        "meal_service": check.meal_service if check else None,
        "submission_date": _iso(check.submission_date) if check else None,
        "submitter_id": check.submitted_by if check else None,
        "submitter_name": submitter.full_name if submitter else None,
    }


def validate_like(note: Optional[str], tags: list[str]) -> None:
    if note and len(note) > MAX_LIKE_NOTE_LENGTH:
        raise ValidationError(f"Note must be {MAX_LIKE_NOTE_LENGTH} characters or less")
    if any(tag not in LIKE_TAGS for tag in tags):
        raise ValidationError("Invalid tags provided")


class QualityCheckService:

    def __init__(self, db: Session, now: Optional[datetime] = None):
        self.db = db
        self.settings = get_settings()
        self.now = now or utc_now()

    def _get(self, check_id: int) -> QualityCheck:
        check = self.db.get(QualityCheck, check_id)
        if check is None:
            raise NotFoundError("Quality check not found")
        return check

    def submit(self, data: dict, user: User) -> dict:
        required = ("branch_slug", "product_name", "meal_service", "section", "taste_score", "appearance_score")
        missing = [name for name in required if data.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if data["meal_service"] not in MEAL_SERVICES:
            raise ValidationError(f"meal_service must be one of: {', '.join(MEAL_SERVICES)}")
        for score in ("taste_score", "appearance_score"):
            if data[score] not in SCORE_RANGE:
                raise ValidationError(f"{score} must be between 1 and 5")
        if not user.has_role(*ALL_BRANCH_ROLES) and data["branch_slug"] not in (user.branch_slugs or []):
            raise PermissionDeniedError("Forbidden: not a member of this branch")
        custom_fields = QualityFieldService(self.db).validate_answers(data.get("custom_fields"))

        check = QualityCheck(
            branch_slug=data["branch_slug"],
            submitted_by=user.id,
            meal_service=data["meal_service"],
            product_name=data["product_name"],
            section=data["section"],
            taste_score=data["taste_score"],
            appearance_score=data["appearance_score"],
            portion_qty_gm=data.get("portion_qty_gm"),
            temp_celsius=data.get("temp_celsius"),
            remarks=data.get("remarks"),
            custom_fields=custom_fields,
        )
        self.db.add(check)
        self.db.commit()
        return check_to_dict(check)

    def list_checks(self, branch_slug: Optional[str] = None) -> list[dict]:
        like_counts = (
            self.db.query(QualityLike.quality_check_id, func.count(QualityLike.id).label("likes"))
            .group_by(QualityLike.quality_check_id)
            .subquery()
        )
        query = (
            self.db.query(QualityCheck, func.coalesce(like_counts.c.likes, 0))
            .outerjoin(like_counts, like_counts.c.quality_check_id == QualityCheck.id)
        )
        if branch_slug:
            query = query.filter(QualityCheck.branch_slug == branch_slug)
        rows = query.order_by(QualityCheck.submission_date.desc(), QualityCheck.id.desc()).all()
        return [check_to_dict(check, int(count)) for check, count in rows]

    def like(self, check_id: int, user: User, note: Optional[str] = None, tags: Optional[list[str]] = None) -> dict:
        tags = tags or []
        validate_like(note, tags)
        check = self._get(check_id)
        if check.submitted_by == user.id:
            raise ValidationError("You cannot like your own submission")

        existing = self.db.query(QualityLike).filter(
            QualityLike.quality_check_id == check_id,
            QualityLike.given_by == user.id,
        ).first()
        if existing is not None:
            raise ValidationError("You have already liked this submission")

        like = QualityLike(quality_check_id=check_id, given_by=user.id, note=note or None, tags=tags)
        self.db.add(like)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError("You have already liked this submission")

        try:
            self._notify_submitter(check, like, user, note, tags)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create like notification for quality check {check_id}: {e}", exc_info=True)

        return {"success": True, "like": like_to_dict(like), "message": "Like added successfully"}

    def _notify_submitter(
        self,
        check: QualityCheck,
        like: QualityLike,
        liker: User,
        note: Optional[str],
        tags: list[str],
    ) -> None:
        liker_name = liker.full_name or "A manager"
        content = [
            "## Quality Check Liked!",
            "",
            f"**Product:** {check.product_name} ({check.meal_service}, {check.branch_slug})",
            "",
            f"**Liked by:** {liker_name} ({liker.role})",
            "",
        ]
        if tags:
            content += ["**Tags:**", *[f"- {tag}" for tag in tags], ""]
        if note:
            content += ["**Note:**", f'"{note}"', ""]
        content += ["---", "*View the full quality check to see all likes and feedback.*"]

        NotificationService(self.db).create(
            type="alert",
            priority="normal",
            title="Your submission was liked!",
            preview=f"{liker_name} liked your {check.product_name} quality check",
            content="\n".join(content),
            created_by=liker_name,
            expires_in_days=LIKE_NOTIFICATION_DAYS,
            related_user_id=check.submitted_by,
            metadata={
                "quality_check_id": check.id,
                "like_id": like.id,
                "product_name": check.product_name,
                "branch_slug": check.branch_slug,
                "type": "quality_like",
            },
        )

    def unlike(self, check_id: int, user: User) -> dict:
        like = self.db.query(QualityLike).filter(
            QualityLike.quality_check_id == check_id,
            QualityLike.given_by == user.id,
        ).first()
        if like is None:
            raise NotFoundError("Like not found or you do not have permission to remove it")
        self.db.delete(like)
        self.db.commit()
        return {"success": True, "message": "Like removed successfully"}

    def likes(self, check_id: int, user: User) -> dict:
        """Likes on a check; visible to its submitter and to reviewers."""
        check = self._get(check_id)
        if check.submitted_by != user.id and not user.has_role(*roles.QUALITY_REVIEWERS):
            raise PermissionDeniedError("Access denied")

        likes = (
            self.db.query(QualityLike)
            .filter(QualityLike.quality_check_id == check_id)
            .order_by(QualityLike.created_at.desc(), QualityLike.id.desc())
            .all()
        )
        mine = next((like for like in likes if like.given_by == user.id), None)
        return {
            "likes": [like_to_dict(like) for like in likes],
            "user_has_liked": mine is not None,
            "total_likes": len(likes),
            "current_user_like_id": mine.id if mine else None,
        }

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def give_feedback(self, check_id: int, text: Optional[str], user: User) -> dict:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Feedback text is required")
        check = self._get(check_id)

        feedback = QualityFeedback(quality_check_id=check.id, feedback_by=user.id, feedback_text=text)
        self.db.add(feedback)
        self.db.commit()

        try:
            author = user.full_name or "A manager"
            NotificationService(self.db).create(
                type="alert",
                priority="normal",
                title="New feedback on your quality check",
                preview=f"{author} left feedback on your {check.product_name} quality check",
                content="\n".join([
                    "## Quality Check Feedback",
                    "",
                    f"**Product:** {check.product_name} ({check.meal_service}, {check.branch_slug})",
                    "",
                    f"**From:** {author} ({user.role})",
                    "",
                    f'"{text}"',
                ]),
                created_by=author,
                expires_in_days=LIKE_NOTIFICATION_DAYS,
                related_user_id=check.submitted_by,
                metadata={"quality_check_id": check.id, "feedback_id": feedback.id, "type": "quality_feedback"},
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create feedback notification for quality check {check_id}: {e}", exc_info=True)

        return {"success": True, "feedback": feedback_to_dict(feedback)}

    def acknowledge_feedback(self, feedback_id: int, user: User) -> dict:
        """Mark feedback as read; only the submitter of the check may do so."""
        feedback = self.db.get(QualityFeedback, feedback_id)
        if feedback is None:
            raise NotFoundError("Feedback not found")
        if feedback.quality_check.submitted_by != user.id:
            raise PermissionDeniedError("Access denied")
        if not feedback.is_read:
            feedback.is_read = True
            feedback.read_at = self.now
            self.db.commit()
        return {"success": True, "feedback": feedback_to_dict(feedback)}

    def my_feedback(self, user: User, limit: int = 50, offset: int = 0) -> dict:
        """Feedback the reviewer has given, newest first, with acknowledgement counts."""
        if not user.has_role(*roles.QUALITY_REVIEWERS):
            raise PermissionDeniedError("Access denied")

        given = self.db.query(QualityFeedback).filter(QualityFeedback.feedback_by == user.id)
        rows = (
            given.order_by(QualityFeedback.created_at.desc(), QualityFeedback.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        total = given.count()
        acknowledged = given.filter(QualityFeedback.is_read.is_(True)).count()
        return {
            "feedback": [feedback_to_dict(feedback) for feedback in rows],
            "total": total,
            "stats": {"total": total, "acknowledged": acknowledged, "pending": total - acknowledged},
        }

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def _day_start(self) -> datetime:
        """Midnight of the current business day, in UTC."""
        tz = pytz.timezone(self.settings.BUSINESS_TIMEZONE)
        today = business_today(self.settings.BUSINESS_TIMEZONE, now=self.now)
        return tz.localize(datetime.combine(today, time.min)).astimezone(pytz.UTC)

    def _known_branches(self) -> list[str]:
        slugs = {slug for (slug,) in self.db.query(QualityCheck.branch_slug).distinct()}
        for (branches,) in self.db.query(User.branch_slugs).filter(User.is_active.is_(True)):
            slugs.update(branches or [])
        return sorted(slug for slug in slugs if slug and not is_central_kitchen(slug))

    def summary(self, user: User, period: str = "today") -> dict:
        """
        Dashboard summary: submission counts, compliance against two checks
        per branch per day, average scores, and the latest and lowest-scoring
        submissions.

        Admins and operations leads see every branch; everyone else sees the
        branches in their ``branch_slugs``.
        """
        if period not in SUMMARY_PERIOD_DAYS:
            raise ValidationError(f"period must be one of: {', '.join(SUMMARY_PERIOD_DAYS)}")

        sees_all = user.has_role(*SUMMARY_ALL_ROLES)
        own = [slug for slug in (user.branch_slugs or []) if not is_central_kitchen(slug)]
        if not sees_all and not own:
            return {
                "total_submissions": 0,
                "compliance_rate": 0,
                "completed_branches": [],
                "pending_branches": [],
                "today_compliance": [],
                "average_scores": {"taste": 0, "appearance": 0},
                "by_section": [],
                "recent_submissions": [],
                "low_scores": [],
            }

        branches = self._known_branches() if sees_all else sorted(own)
        day_start = self._day_start()
        start = day_start if period == "today" else self.now - timedelta(days=SUMMARY_PERIOD_DAYS[period])

        scoped = self.db.query(QualityCheck)
        if not sees_all:
            scoped = scoped.filter(QualityCheck.branch_slug.in_(branches))
        in_period = scoped.filter(QualityCheck.submission_date >= start)
        total = in_period.count()

        submitted = {}
        today = (
            scoped.filter(QualityCheck.submission_date >= day_start)
            .with_entities(QualityCheck.branch_slug, QualityCheck.meal_service)
            .distinct()
        )
        for slug, meal in today:
            submitted.setdefault(slug, set()).add(meal)
        compliance = [
            {
                "branch_slug": slug,
                "branch_name": branch_name(slug),
                "breakfast_submitted": "breakfast" in submitted.get(slug, ()),
                "lunch_submitted": "lunch" in submitted.get(slug, ()),
            }
            for slug in branches
        ]
        completed = [b for b in compliance if b["breakfast_submitted"] or b["lunch_submitted"]]
        pending = [b for b in compliance if not (b["breakfast_submitted"] or b["lunch_submitted"])]

        expected = len(branches) * EXPECTED_DAILY_CHECKS * SUMMARY_PERIOD_DAYS[period]
        taste, appearance = in_period.with_entities(
            func.avg(QualityCheck.taste_score), func.avg(QualityCheck.appearance_score)
        ).one()

        count = func.count(QualityCheck.id)
        sections = (
            in_period.with_entities(
                QualityCheck.section,
                count,
                func.avg(QualityCheck.taste_score),
                func.avg(QualityCheck.appearance_score),
            )
            .group_by(QualityCheck.section)
            .order_by(count.desc())
            .all()
        )

        newest = (QualityCheck.submission_date.desc(), QualityCheck.id.desc())
        recent = scoped.order_by(*newest).limit(RECENT_SUBMISSIONS).all()
        low = (
            in_period.filter(or_(QualityCheck.taste_score <= LOW_SCORE, QualityCheck.appearance_score <= LOW_SCORE))
            .order_by(*newest)
            .limit(LOW_SCORE_SUBMISSIONS)
            .all()
        )

        return {
            "total_submissions": total,
            "compliance_rate": round(total / expected * 100) if expected else 0,
            "completed_branches": completed,
            "pending_branches": pending,
            "today_compliance": compliance,
            "average_scores": {
                "taste": round(float(taste), 1) if taste is not None else 0,
                "appearance": round(float(appearance), 1) if appearance is not None else 0,
            },
            "by_section": [
                {
                    "section": section,
                    "count": int(n),
                    "avg_taste": round(float(avg_taste), 1),
                    "avg_appearance": round(float(avg_appearance), 1),
                }
                for section, n, avg_taste, avg_appearance in sections
            ],
            "recent_submissions": [check_to_dict(check) for check in recent],
            "low_scores": [check_to_dict(check) for check in low],
        }

    def _likes_between(self, start: datetime, end: datetime) -> list[QualityLike]:
        return (
            self.db.query(QualityLike)
            .join(QualityCheck, QualityLike.quality_check_id == QualityCheck.id)
            .filter(QualityCheck.submission_date >= start, QualityCheck.submission_date <= end)
            .all()
        )

    def likes_analytics(self, user: User, period: str = "month") -> dict:
        """
        Recognition over submissions made in the last week or month (30 days).

        The trend compares the like count with the window of the same length
        just before it.
        """
        if not user.has_role(*roles.QUALITY_REVIEWERS):
            raise PermissionDeniedError("Access denied")

        window = timedelta(days=7 if period == "week" else 30)
        start = self.now - window
        likes = self._likes_between(start, self.now)
        previous = len(self._likes_between(start - window, start))

        total_submissions = (
            self.db.query(QualityCheck)
            .filter(QualityCheck.submission_date >= start, QualityCheck.submission_date <= self.now)
            .count()
        )
        liked = {like.quality_check_id for like in likes}

        performers = {}
        for like in likes:
            submitter = like.quality_check.submitter
            entry = performers.setdefault(
                like.quality_check.submitted_by,
                {"name": submitter.full_name if submitter else None, "likes_count": 0, "checks": set()},
            )
            entry["likes_count"] += 1
            entry["checks"].add(like.quality_check_id)
        top_performers = sorted(performers.values(), key=lambda p: p["likes_count"], reverse=True)[:TOP_PERFORMERS]

        tags = Counter(tag for like in likes for tag in (like.tags or []))

        if len(likes) > previous:
            trend = "up"
        elif len(likes) < previous:
            trend = "down"
        else:
            trend = "stable"

        return {
            "total_likes": len(likes),
            "liked_submissions": len(liked),
            "total_submissions": total_submissions,
            "like_rate": round(len(liked) / total_submissions * 100, 1) if total_submissions else 0,
            "top_performers": [
                {"name": p["name"], "likes_count": p["likes_count"], "submissions_count": len(p["checks"])}
                for p in top_performers
            ],
            "top_tags": [{"tag": tag, "count": n} for tag, n in tags.most_common(TOP_TAGS)],
            "recent_trend": trend,
        }

    def products(self, search: Optional[str] = None, category: Optional[str] = None, limit: int = 50) -> dict:
        """
        Products sold through the ERP, for the submission form's picker.

        With a search term of at least two characters, matches across the food
        categories by name; with a category, that category's products; else
        every food product grouped by category. Best sellers come first.
        """
        search = (search or "").strip().lower()
        revenue = func.coalesce(func.sum(OdooSale.price_subtotal_with_tax), 0).label("revenue")
        stmt = (
            select(
                OdooSale.items,
                OdooSale.category,
                func.coalesce(func.sum(OdooSale.qty), 0).label("quantity"),
                revenue,
                func.count(OdooSale.id).label("times_sold"),
            )
            .where(OdooSale.items.isnot(None), OdooSale.items != "")
            .group_by(OdooSale.items, OdooSale.category)
        )
        searching = len(search) >= MIN_SEARCH_LENGTH
        if searching:
            stmt = (
                stmt.where(OdooSale.category.in_(FOOD_CATEGORIES), func.lower(OdooSale.items).like(f"%{search}%"))
                .order_by(revenue.desc())
                .limit(limit)
            )
        elif category:
            stmt = stmt.where(OdooSale.category == category).order_by(revenue.desc()).limit(limit)
        else:
            stmt = stmt.where(OdooSale.category.in_(FOOD_CATEGORIES)).order_by(OdooSale.category, revenue.desc())
        rows = self.db.execute(stmt).all()

        by_category = {name: [] for name in FOOD_CATEGORIES}
        for row in rows:
            by_category.setdefault(row.category or "Other", []).append({
                "name": row.items,
                "revenue": round(float(row.revenue), 2),
                "quantity": round(float(row.quantity), 3),
                "times_sold": int(row.times_sold),
            })
        by_category = {name: products for name, products in by_category.items() if products}

        return {
            "categories": [
                {"name": name, "count": len(products), "top_products": [p["name"] for p in products[:CATEGORY_PREVIEW]]}
                for name, products in by_category.items()
            ],
            "products_by_category": by_category,
            "search_results": [
                {"name": row.items, "category": row.category, "revenue": round(float(row.revenue), 2)}
                for row in rows
            ] if searching else [],
            "total_products": len(rows),
        }
