import logging

from coffeehouse.exceptions import ValidationFailed
from coffeehouse.permissions import CUSTOMER, enforce
from coffeehouse.store import get_store
from coffeehouse.utils import new_id, newest_first, timestamp

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class ReviewService:
    def __init__(self, store=None):
        self.store = store or get_store()

    def list_reviews(self):
        return newest_first(self.store.read('reviews'))

    def submit(self, actor, rating, comment=''):
        enforce(actor, required_role=CUSTOMER)
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationFailed(f'rating must be between {MIN_RATING} and {MAX_RATING}')

        review = {
            'id': new_id(),
            'user_id': actor.id,
            'customer_name': actor.name,
            'rating': rating,
            'comment': (comment or '').strip(),
            'created_at': timestamp(),
        }
        self.store.update('reviews', lambda reviews: reviews.append(review))
        logger.info("Review %s submitted by %s", review['id'], actor.id)
        return review
