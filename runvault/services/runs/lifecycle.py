from typing import Any, List, Optional

from flask import current_app

from runvault.errors import NotFound, ValidationError
from runvault.models import GameSave, generate_id, utcnow
from runvault.services.store import store_call
from runvault.services.validation import (
    optional_identifier,
    require_identifier,
    require_non_negative_int,
)
from .locks import user_lock


class RunLifecycleManager:
    """Save/load/finish/delete for game runs.

    Every mutation for a user happens under that user's lock and commits as
    one transaction, so a user never ends up with two active runs and a save
    never lands half-applied.
    """

    def __init__(self, session):
        self.session = session

    def save_game(
        self,
        user_id: str,
        game_state: Any,
        character_id: str,
        floor_number: int,
        current_gold: int,
        max_floor_reached: int,
        run_id: Optional[str] = None,
    ) -> GameSave:
        """Update the run identified by ``run_id``, or start a new one.

        Starting a new run retires the user's current active run (it stays
        loadable by its own run id).
        """
        require_identifier(user_id, 'userId')
        if game_state is None:
            raise ValidationError('gameState is required')
        require_identifier(character_id, 'characterId')
        floor_number = require_non_negative_int(floor_number, 'floorNumber')
        current_gold = require_non_negative_int(current_gold, 'currentGold')
        max_floor_reached = require_non_negative_int(max_floor_reached, 'maxFloorReached')
        run_id = optional_identifier(run_id, 'runId')

        with user_lock(user_id), store_call(self.session, 'save'):
            if run_id is not None:
                save = self._update_run(user_id, run_id, game_state, character_id, floor_number, current_gold)
                tag = 'run-update'
            else:
                save = self._start_run(user_id, game_state, character_id, floor_number, current_gold, max_floor_reached)
                tag = 'run-start'
            saved_run_id, saved_max = save.run_id, save.max_floor_reached
            self.session.commit()

        current_app.logger.info(
            f"[{tag}] user={user_id} run={saved_run_id} floor={floor_number} max_floor={saved_max}"
        )
        return save

    def _update_run(self, user_id, run_id, game_state, character_id, floor_number, current_gold):
        # Finished runs are updated in place but stay finished
        save = self._locked_run(user_id, run_id)
        save.game_state = game_state
        save.character_id = character_id
        save.floor_number = floor_number
        save.current_gold = current_gold
        save.max_floor_reached = max(save.max_floor_reached or 0, floor_number)
        save.updated_at = utcnow()
        self.session.flush()
        return save

    def _start_run(self, user_id, game_state, character_id, floor_number, current_gold, max_floor_reached):
        now = utcnow()
        retired = (
            self.session.query(GameSave)
            .filter_by(user_id=user_id, is_active=True)
            .update({'is_active': False, 'updated_at': now}, synchronize_session='fetch')
        )
        if retired:
            current_app.logger.info(f"[run-retire] user={user_id} retired={retired}")
        save = GameSave(
            user_id=user_id,
            run_id=generate_id(),
            game_state=game_state,
            character_id=character_id,
            floor_number=floor_number,
            current_gold=current_gold,
            max_floor_reached=max(max_floor_reached, floor_number),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self.session.add(save)
        self.session.flush()
        return save

    def _locked_run(self, user_id: str, run_id: str) -> GameSave:
        save = (
            self.session.query(GameSave)
            .filter_by(user_id=user_id, run_id=run_id)
            .with_for_update()
            .first()
        )
        if save is None:
            raise NotFound()
        return save

    def load_active_game(self, user_id: str) -> Optional[GameSave]:
        require_identifier(user_id, 'userId')
        with store_call(self.session, 'load-active'):
            return (
                self.session.query(GameSave)
                .filter_by(user_id=user_id, is_active=True)
                .order_by(GameSave.updated_at.desc())
                .first()
            )

    def load_save_by_run_id(self, user_id: str, run_id: str) -> Optional[GameSave]:
        require_identifier(user_id, 'userId')
        require_identifier(run_id, 'runId')
        with store_call(self.session, 'load-run'):
            return self.session.query(GameSave).filter_by(user_id=user_id, run_id=run_id).first()

    def get_user_saves(self, user_id: str) -> List[GameSave]:
        require_identifier(user_id, 'userId')
        with store_call(self.session, 'list'):
            return (
                self.session.query(GameSave)
                .filter_by(user_id=user_id)
                .order_by(GameSave.updated_at.desc(), GameSave.created_at.desc())
                .all()
            )

    def finish_run(self, user_id: str, run_id: str) -> GameSave:
        """Mark a run finished. Finishing an already finished run is a no-op."""
        require_identifier(user_id, 'userId')
        require_identifier(run_id, 'runId')
        with user_lock(user_id), store_call(self.session, 'finish'):
            save = self._locked_run(user_id, run_id)
            finished_now = save.is_active
            if finished_now:
                save.is_active = False
                save.updated_at = utcnow()
            self.session.commit()

        if finished_now:
            current_app.logger.info(f"[run-finish] user={user_id} run={run_id}")
        else:
            current_app.logger.info(f"[run-finish-skip] user={user_id} run={run_id} already finished")
        return save

    def delete_save(self, user_id: str, run_id: str) -> None:
        require_identifier(user_id, 'userId')
        require_identifier(run_id, 'runId')
        with user_lock(user_id), store_call(self.session, 'delete'):
            save = self._locked_run(user_id, run_id)
            self.session.delete(save)
            self.session.commit()
        current_app.logger.info(f"[run-delete] user={user_id} run={run_id}")
