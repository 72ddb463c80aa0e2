class Messages:
    """Тексты, которые бот отправляет пользователю."""

    class Common:
        START = (
            "👋 Привет! Я помогу собрать профиль для цифровой визитки.\n\n"
            "/login email пароль — войти\n"
            "/new — создать профиль\n"
            "/profiles — мои профили\n"
            "/cancel — прервать текущее действие"
        )
        HELP = (
            "На любом шаге мастера можно отправить /back, чтобы вернуться назад, "
            "или /cancel, чтобы выйти без сохранения.\n"
            "/skip — пропустить необязательный шаг или оставить текущее значение."
        )
        INVALID_INPUT = "❌ Некорректный ввод. Попробуйте ещё раз."
        CANCELLED = "Действие отменено."
        SESSION_TIMEOUT = "⌛ Сессия истекла. Начните заново с /new или /profiles."
        INTERNAL_ERROR = "❌ Внутренняя ошибка. Попробуйте позже или обратитесь в поддержку."

    class Auth:
        LOGIN_USAGE = "Использование: /login email пароль"
        LOGIN_OK = "✅ Вы вошли как {name}."
        LOGIN_ERROR = "❌ Не удалось войти: {error}"
        LOGOUT_OK = "Вы вышли из аккаунта."
        NOT_LOGGED_IN = "Вы не авторизованы."
        LOGIN_REQUIRED = "🔒 Сначала войдите: /login email пароль"

    class Wizard:
        CHOOSE_TYPE = "<b>Шаг 1.</b> Выберите тип профиля:"
        CHOOSE_LAYOUT = "<b>Шаг 2.</b> Выберите макет визитки:"
        ENTER_CONTACTS = (
            "<b>Шаг 3.</b> Отправьте контакты, по одному полю в строке:\n\n"
            "<code>name: Иван Петров\n"
            "email: ivan@example.com\n"
            "phone: +7 912 345 67 89\n"
            "address: Москва\n"
            "website: https://example.com\n"
            "linkedin: https://linkedin.com/in/ivan</code>\n\n"
            "Обязательны name, email и phone. Доступны также facebook, instagram, twitter, github."
        )
        CURRENT_CONTACTS = "Текущие контакты:\n{contacts}\n\n/skip — оставить без изменений."
        UPLOAD_PHOTO = "Отправьте своё фото (необязательно) или /skip."
        UPLOAD_COMPANY_LOGO = "Отправьте логотип компании изображением (необязательно) или /skip."
        UPLOAD_RESUME = "Загрузите резюме в формате PDF."
        ENTER_ABOUT_ME = "<b>Шаг 4.</b> Расскажите коротко о себе:"
        ENTER_SKILLS = "Перечислите навыки через запятую:"
        PRODUCTS_MENU = "<b>Шаг 4.</b> Продукты (до 3):\n{products}"
        NO_PRODUCTS_YET = "пока нет"
        ENTER_PRODUCT_NAME = "Название продукта:"
        ENTER_PRODUCT_DESCRIPTION = "Короткое описание продукта:"
        UPLOAD_PRODUCT_IMAGE = "Отправьте изображение продукта (необязательно) или /skip."
        UPLOAD_PRODUCT_PDF = "Отправьте PDF о продукте (необязательно) или /skip."
        PRODUCT_ADDED = "✅ Продукт «{name}» добавлен."
        PRODUCT_REMOVED = "🗑️ Продукт удалён."
        ENQUIRY_ENABLE = (
            "<b>Шаг 5.</b> Включить форму заявок на визитке?\n"
            "Посетители смогут оставить имя, email, телефон и сообщение."
        )
        ENQUIRY_MESSAGE = "Добавьте сообщение для посетителей (необязательно) или /skip."
        REVIEW = "<b>Проверьте профиль перед сохранением</b>\n\n{summary}"
        SAVING = "⏳ Сохраняем профиль..."
        CREATED = "🎉 Профиль создан! Выберите тариф, чтобы активировать визитку."
        UPDATED = "✅ Профиль обновлён."
        SUBMIT_ERROR = "❌ Не удалось сохранить профиль: {error}\nДанные сохранены, можно попробовать ещё раз."
        BUSY = "Профиль уже сохраняется, подождите."
        STEP_NOT_ACTIVE = "Этот шаг сейчас недоступен."
        NOT_STARTED = "Мастер не запущен. Начните с /new."
        LOAD_ERROR = "❌ Не удалось загрузить профиль: {error}"
        FILE_EXPECTED = "Отправьте файл или /skip."

    class Validation:
        NAME_REQUIRED = "Укажите имя"
        EMAIL_REQUIRED = "Укажите email"
        EMAIL_INVALID = "Некорректный email"
        PHONE_REQUIRED = "Укажите телефон"
        IMAGE_ONLY = "Допускаются только изображения"
        PDF_ONLY = "Допускаются только PDF-файлы"
        ABOUT_ME_REQUIRED = "Расскажите о себе"
        SKILLS_REQUIRED = "Добавьте хотя бы один навык"
        RESUME_REQUIRED = "Загрузите резюме"
        PRODUCT_NAME_REQUIRED = "Укажите название продукта"
        PRODUCT_DESCRIPTION_REQUIRED = "Укажите описание продукта"
        NO_PRODUCTS = "Добавьте хотя бы один продукт"
        MAX_PRODUCTS = "Можно добавить не больше {max} продуктов"
        PRODUCT_NOT_FOUND = "Продукт не найден"
        LAYOUT_NOT_ALLOWED = "Этот макет недоступен для выбранного типа профиля"
        UNKNOWN_CONTACT_FIELD = "Неизвестное поле: {field}"

    class Profiles:
        LIST_TITLE = "<b>📇 Мои профили</b>"
        EMPTY = "У вас пока нет профилей. Создайте первый: /new"
        LOAD_ERROR = "❌ Не удалось загрузить профили: {error}"
        DELETE_CONFIRM = "Удалить профиль «{name}»?"
        DELETE_OK = "🗑️ Профиль удалён."
        DELETE_ERROR = "❌ Не удалось удалить профиль: {error}"
        TOGGLE_OK = "Статус профиля изменён."
        TOGGLE_ERROR = "❌ Не удалось изменить статус: {error}"

    class Buttons:
        STUDENT = "🎓 Студент"
        PROFESSIONAL = "💼 Профессионал"
        LAYOUTS = {
            "single": "📄 Одна страница",
            "double": "📑 Две страницы: о себе и резюме",
            "double-products": "🛍️ Две страницы: продукты",
            "double-enquiry": "✉️ Две страницы: форма заявок",
            "triple": "📚 Три страницы: продукты и заявки",
        }
        BACK = "⬅️ Назад"
        CANCEL = "✖️ Отмена"
        SUBMIT = "✅ Сохранить"
        YES = "✅ Да"
        NO = "❌ Нет"
        ADD_PRODUCT = "➕ Добавить продукт"
        REMOVE_PRODUCT = "🗑️ Удалить «{name}»"
        DONE = "➡️ Готово"
        EDIT = "✏️ Редактировать"
        TOGGLE = "🔁 Вкл/выкл"
        DELETE = "🗑️ Удалить"
