# pluto/api/auth/services.py
import logging
from typing import Any, Dict, Optional

from firebase_admin import firestore

from pluto.core.errors import (
    AuthenticationError,
    EmailNotVerifiedError,
    ExternalServiceError,
    ProfileSetupError,
)
from pluto.models.user import DoctorProfile, PetProfile, User, UserRole
from pluto.services.identity_service import IdentityService
from pluto.services.record_store import PetRecordService
from pluto.utils.datetime_utils import DateTimeUtils
from pluto.utils.payload import sanitize

ROLE_MISMATCH_MESSAGES = {
    UserRole.PET_OWNER: "This account is registered as a doctor. Please use the doctor login.",
    UserRole.DOCTOR: "This account is registered as a pet owner. Please use the pet owner login.",
}


class AuthService:
    """가입/로그인/탈퇴와 사용자 프로필 문서(users/{uid}) 관리를 담당합니다."""

    def __init__(self, identity_service: IdentityService, record_service: PetRecordService, db=None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.identity = identity_service
        self.records = record_service

    def _build_user(self, uid: str, email: str, role: UserRole, details: Dict[str, Any]) -> User:
        """역할에 맞는 프로필을 붙여 User 를 만듭니다."""
        username = email.split('@')[0].lower()
        user = User(id=uid, username=username, email=email, role=role,
                    createdAt=DateTimeUtils.to_iso_string(DateTimeUtils.now()))
        if role == UserRole.DOCTOR:
            user.doctorDetails = DoctorProfile.from_dict({**details, 'id': uid})
        else:
            user.petDetails = PetProfile.from_dict({**details, 'id': self.records.pet_id_for(uid)})
        return user

    def register(self, email: str, password: str, role: UserRole, details: Dict[str, Any]) -> User:
        """
        1. 인증 계정 생성 (실패 시 RegistrationError)
        2. 인증 메일 발송 (실패해도 가입은 계속)
        3. 프로필 문서 저장, 보호자는 케어 일지 컨테이너 생성 (실패 시 ProfileSetupError)
        """
        account = self.identity.sign_up(email, password)
        uid = account['localId']

        try:
            self.identity.send_verification_email(account['idToken'])
        except (AuthenticationError, ExternalServiceError) as e:
            logging.warning(f"Verification email could not be sent to {email}: {e}")

        user = self._build_user(uid, email, role, details or {})
        try:
            self.users_ref.document(uid).set(sanitize(user.to_dict()))
            if role == UserRole.PET_OWNER:
                self.records.initialize_journal(uid)
        except Exception as e:
            logging.error(f"Profile setup failed after account creation (uid: {uid}): {e}", exc_info=True)
            raise ProfileSetupError()

        logging.info(f"New {role.value} registered: {uid}")
        return user

    def login(self, email: str, password: str, role: Optional[UserRole] = None) -> User:
        """
        이메일/비밀번호로 로그인합니다.
        인증되지 않은 이메일이면 인증 메일 재발송에 쓸 토큰을 담아 EmailNotVerifiedError 를 던집니다.
        프로필 문서가 없으면 기본 보호자 프로필을 만들어 저장합니다.
        """
        session = self.identity.sign_in(email, password)
        uid = session['localId']
        account = self.identity.lookup(session['idToken'])
        if not account.get('emailVerified'):
            raise EmailNotVerifiedError(extra={'verification_token': session['idToken']})

        user = self.get_user_profile(uid)
        if user is None:
            logging.warning(f"No profile found for {uid}, creating a default pet owner profile.")
            user = self._build_user(uid, email, UserRole.PET_OWNER, {'name': ''})
            self.users_ref.document(uid).set(sanitize(user.to_dict()))
            self.records.initialize_journal(uid)

        if role is not None and user.role != role:
            raise AuthenticationError(ROLE_MISMATCH_MESSAGES[role], error_code='ROLE_MISMATCH')

        logging.info(f"User logged in: {uid} ({user.role.value})")
        return user

    def get_user_profile(self, user_id: str) -> Optional[User]:
        return self.records.get_user(user_id)

    def resend_verification(self, id_token: str):
        self.identity.send_verification_email(id_token)
        logging.info("Verification email re-sent.")

    def send_password_reset(self, email: str):
        self.identity.send_password_reset(email)
        logging.info(f"Password reset email requested for {email}")

    def delete_account(self, user_id: str):
        """인증 계정, 프로필 문서, 반려동물 기록을 모두 삭제합니다."""
        self.identity.delete_user(user_id)
        self.records.delete_all_records(user_id)
        self.users_ref.document(user_id).delete()
        logging.info(f"Account deleted: {user_id}")
