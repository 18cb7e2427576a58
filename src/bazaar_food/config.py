from pydantic_settings import BaseSettings

DEFAULT_MBANK_PAY_URL = (
    "https://app.mbank.kg/qr/#00020101021132500012c2c.mbank.kg01020210129969900900911202111302115204999953034175405100005910AKTILEK%20K.63046588"
)


class Settings(BaseSettings):
    DATABASE_URL: str
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    APP_NAME: str = "Bazaar Food"

    # админка (HTTP Basic)
    ADMIN_USER: str = ""
    ADMIN_PASS: str = ""

    # web push
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_SUBJECT: str = ""

    # оплата переводом
    MBANK_PAY_URL: str = DEFAULT_MBANK_PAY_URL
    PAYMENT_CODE_PREFIX: str = "BX"

    class Config:
        env_file = ".env"

settings = Settings()
