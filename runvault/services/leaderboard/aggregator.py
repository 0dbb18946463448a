import math
from datetime import timedelta
from typing import List, Optional

from flask import current_app
from sqlalchemy import func

from runvault.errors import ValidationError
from runvault.models import LeaderboardScore, utcnow
from runvault.services.store import store_call
from runvault.services.validation import (
    optional_non_negative_number,
    require_identifier,
    require_non_negative_int,
    require_positive_int,
)


# Deeper floor wins, then more gold, then whoever got there first.
RANK_ORDER = (
    LeaderboardScore.final_floor.desc(),
    LeaderboardScore.final_gold.desc(),
    LeaderboardScore.created_at.asc(),
    LeaderboardScore.id.asc(),
)


class LeaderboardAggregator:
    """Score submission and the ranked views over the score ledger."""

    def __init__(self, session):
        self.session = session

    def submit_score(
        self,
        user_id: str,
        username: str,
        character_id: str,
        final_floor: int,
        final_gold: int,
        total_encounters: Optional[int] = 0,
        run_duration_seconds: Optional[float] = None,
    ) -> LeaderboardScore:
        """Append a score. Never deduplicates: each call is a new entry."""
        require_identifier(user_id, 'userId')
        require_identifier(username, 'username')
        require_identifier(character_id, 'characterId')
        if final_floor is None or final_gold is None:
            raise ValidationError('finalFloor and finalGold are required')
        final_floor = require_non_negative_int(final_floor, 'finalFloor')
        final_gold = require_non_negative_int(final_gold, 'finalGold')
        total_encounters = require_non_negative_int(total_encounters or 0, 'totalEncounters')
        run_duration_seconds = optional_non_negative_number(run_duration_seconds, 'runDurationSeconds')

        entry = LeaderboardScore(
            user_id=user_id,
            # Display name as of submission; later renames do not rewrite history
            username=username,
            character_id=character_id,
            final_floor=final_floor,
            final_gold=final_gold,
            total_encounters=total_encounters,
            run_duration_seconds=run_duration_seconds,
            created_at=utcnow(),
        )
        with store_call(self.session, 'submit-score'):
            self.session.add(entry)
            self.session.commit()

        current_app.logger.info(
            f"[score-submit] user={user_id} character={character_id} floor={final_floor} gold={final_gold}"
        )
        return entry

    def get_global_leaderboard(self, limit: int) -> List[LeaderboardScore]:
        limit = require_positive_int(limit, 'limit')
        with store_call(self.session, 'global-leaderboard'):
            return self.session.query(LeaderboardScore).order_by(*RANK_ORDER).limit(limit).all()

    def get_character_leaderboard(self, character_id: str, limit: int) -> List[LeaderboardScore]:
        require_identifier(character_id, 'characterId')
        limit = require_positive_int(limit, 'limit')
        with store_call(self.session, 'character-leaderboard'):
            return (
                self.session.query(LeaderboardScore)
                .filter_by(character_id=character_id)
                .order_by(*RANK_ORDER)
                .limit(limit)
                .all()
            )

    def get_user_best_scores(self, user_id: str) -> List[LeaderboardScore]:
        """Best entry per character for one user, best overall first."""
        require_identifier(user_id, 'userId')
        ranked = (
            self.session.query(
                LeaderboardScore.id.label('id'),
                func.row_number()
                .over(partition_by=LeaderboardScore.character_id, order_by=list(RANK_ORDER))
                .label('position'),
            )
            .filter(LeaderboardScore.user_id == user_id)
            .subquery()
        )
        with store_call(self.session, 'user-best'):
            return (
                self.session.query(LeaderboardScore)
                .join(ranked, ranked.c.id == LeaderboardScore.id)
                .filter(ranked.c.position == 1)
                .order_by(*RANK_ORDER)
                .all()
            )

    def get_user_character_best(self, user_id: str, character_id: str) -> Optional[LeaderboardScore]:
        require_identifier(user_id, 'userId')
        require_identifier(character_id, 'characterId')
        with store_call(self.session, 'user-character-best'):
            return (
                self.session.query(LeaderboardScore)
                .filter_by(user_id=user_id, character_id=character_id)
                .order_by(*RANK_ORDER)
                .first()
            )

    def get_recent_scores(self, hours_back: float, limit: int) -> List[LeaderboardScore]:
        hours_back = optional_non_negative_number(hours_back, 'hoursBack')
        if hours_back is None:
            raise ValidationError('hoursBack is required')
        limit = require_positive_int(limit, 'limit')
        try:
            cutoff = utcnow() - timedelta(hours=hours_back)
        except OverflowError:
            # Window reaches past the earliest representable date: everything counts
            cutoff = None
        with store_call(self.session, 'recent-scores'):
            query = self.session.query(LeaderboardScore)
            if cutoff is not None:
                query = query.filter(LeaderboardScore.created_at >= cutoff)
            return (
                query.order_by(LeaderboardScore.created_at.desc(), LeaderboardScore.id.desc())
                .limit(limit)
                .all()
            )

    def get_global_stats(self) -> dict:
        with store_call(self.session, 'global-stats'):
            total, avg_floor, max_floor, avg_gold = self.session.query(
                func.count(LeaderboardScore.id),
                func.avg(LeaderboardScore.final_floor),
                func.max(LeaderboardScore.final_floor),
                func.avg(LeaderboardScore.final_gold),
            ).one()

        if not total:
            return {'totalRuns': 0, 'avgFloor': 0, 'maxFloor': 0, 'avgGold': 0}
        return {
            'totalRuns': int(total),
            'avgFloor': round(float(avg_floor), 2),
            'maxFloor': int(max_floor),
            # Half-up, matching the stats page
            'avgGold': int(math.floor(float(avg_gold) + 0.5)),
        }
