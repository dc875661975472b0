from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.crud import user as crud
from app.db.models.user import ROLE_ADMIN, ROLE_ADVERTISER, ROLE_USER
from app.db.session import get_db
from app.schemas.token import Token
from app.schemas.user import UserCreate, UserLogin, UserOut

router = APIRouter()


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(user_in: UserCreate, db: Session = Depends(get_db)):
    return crud.register(db, user_in)


@router.post("/register/user", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register_normal_user(user_in: UserCreate, db: Session = Depends(get_db)):
    return crud.register(db, user_in, role=ROLE_USER)


@router.post("/register/advertiser", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register_advertiser(user_in: UserCreate, db: Session = Depends(get_db)):
    return crud.register(db, user_in, role=ROLE_ADVERTISER)


@router.post("/login", response_model=Token)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    return Token(token=crud.login(db, credentials))


# Separate client and advertiser apps sign in through their own endpoint
@router.post("/login/user", response_model=Token)
def login_as_user(credentials: UserLogin, db: Session = Depends(get_db)):
    token = crud.login(db, credentials, allowed_roles={ROLE_USER},
                       role_error="Account is not a normal user")
    return Token(token=token)


@router.post("/login/advertiser", response_model=Token)
def login_as_advertiser(credentials: UserLogin, db: Session = Depends(get_db)):
    token = crud.login(db, credentials, allowed_roles={ROLE_ADVERTISER, ROLE_ADMIN},
                       role_error="Account is not an advertiser")
    return Token(token=token)
