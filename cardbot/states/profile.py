from aiogram.fsm.state import State, StatesGroup

class ProfileWizardFSM(StatesGroup):
    choosing_type = State()
    choosing_layout = State()
    entering_contacts = State()  # Текст контактов, затем фото/логотип через uploading_file
    uploading_file = State()  # Загрузка: photo / company_logo / resume (data['file_type'])
    entering_student_details = State()  # Подшаги about_me, skills в data['current_field']
    products_menu = State()  # Список продуктов: добавить / удалить / готово
    entering_product = State()  # Подшаги name, description, image, pdf в data['current_step']
    enquiry_setup = State()  # Включение формы и сообщение посетителям
    review = State()  # Проверка и отправка
